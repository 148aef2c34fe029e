import os
from datetime import date

from dotenv import load_dotenv
from sitehub import create_app
from sitehub.repositories.organization_repository import OrganizationRepository
from sitehub.repositories.payroll_settings_repository import TaxRateRepository
from sitehub.repositories.profile_repository import ProfileRepository
from sitehub.repositories.site_repository import SiteAssignmentRepository, SiteRepository
from sitehub.services.payroll.salary_calculator import DEFAULT_TAX_RATES
from sitehub.services.user_service import hash_password

load_dotenv()

DEFAULT_ORGANIZATIONS = [
    {'name': '본사', 'type': 'head_office', 'business_registration_number': '123-45-67891'},
    {'name': '협력사 A', 'type': 'partner', 'business_registration_number': None},
]


def seed_organizations():
    """Seed the head office and a partner organization if they don't exist."""
    organization_repo = OrganizationRepository()
    existing = {o.name: o for o in organization_repo.list_scoped()}
    organizations = {}

    for org in DEFAULT_ORGANIZATIONS:
        if org['name'] in existing:
            print(f"Organization '{org['name']}' already exists.")
            organizations[org['type']] = existing[org['name']]
            continue
        try:
            organizations[org['type']] = organization_repo.create(is_active=True, **org)
            print(f"Created organization '{org['name']}'.")
        except Exception as e:
            print(f"Failed to create organization '{org['name']}': {e}")
    return organizations


def seed_user(email, full_name, role, organization, password, is_restricted=False):
    profile_repo = ProfileRepository()
    existing_user = profile_repo.get_by_email(email)
    if existing_user:
        print(f"User {email} already exists.")
        return existing_user

    print(f"Creating {role} user {email}...")
    try:
        return profile_repo.create(
            full_name=full_name,
            email=email,
            role=role,
            organization_id=organization.id if organization else None,
            password_hash=hash_password(password),
            status='active',
            is_restricted=is_restricted,
        )
    except Exception as e:
        print(f"Failed to create user {email}: {e}")
        return None


def seed_site(organization):
    """Seed a demo site if it doesn't exist."""
    site_repo = SiteRepository()
    for site in site_repo.get_for_organization(organization.id):
        if site.name == '강남 A현장':
            print("Demo site '강남 A현장' already exists.")
            return site

    print("Creating demo site '강남 A현장'...")
    try:
        return site_repo.create(
            name='강남 A현장',
            address='서울특별시 강남구 테헤란로 123',
            organization_id=organization.id,
            status='active',
            start_date=date.today(),
        )
    except Exception as e:
        print(f"Failed to create demo site: {e}")
        return None


def seed_assignment(site, user, role):
    assignment_repo = SiteAssignmentRepository()
    if assignment_repo.get_active(site.id, user.id):
        return
    assignment_repo.create(site_id=site.id, user_id=user.id, role=role, is_active=True, assigned_date=date.today())
    print(f"  Assigned {user.email} to '{site.name}' as {role}.")


def seed_tax_rates():
    """Seed default employment tax rates (percentages)."""
    tax_rate_repo = TaxRateRepository()
    for employment_type, rates in DEFAULT_TAX_RATES.items():
        for tax_name, rate in rates.items():
            if tax_rate_repo.get_by_type_and_name(employment_type, tax_name):
                continue
            tax_rate_repo.create(
                employment_type=employment_type,
                tax_name=tax_name,
                rate=rate,
                calculation_method='percentage',
                is_active=True,
            )
            print(f"  Created tax rate {employment_type}/{tax_name} = {rate}%")


def seed_all():
    app = create_app()
    with app.app_context():
        organizations = seed_organizations()
        head_office = organizations.get('head_office')
        partner = organizations.get('partner')
        if not head_office or not partner:
            print("Cannot seed without default organizations.")
            return

        password = os.environ.get('ADMIN_PASSWORD', 'password123')
        seed_user(os.environ.get('ADMIN_EMAIL', 'admin@example.com'), '시스템 관리자', 'system_admin', head_office, password)
        seed_user('partner@example.com', '협력사 담당자', 'partner', partner, password, is_restricted=True)
        manager = seed_user('manager@example.com', '김현장', 'site_manager', partner, password)
        worker = seed_user('worker@example.com', '이작업', 'worker', partner, password)

        site = seed_site(partner)
        if not site:
            print("Cannot seed assignments without a site.")
            return
        if manager:
            seed_assignment(site, manager, 'site_manager')
        if worker:
            seed_assignment(site, worker, 'worker')

        print("Creating default tax rates...")
        seed_tax_rates()

        print("\nSeed complete!")


if __name__ == "__main__":
    seed_all()
