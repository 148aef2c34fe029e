import unittest
from datetime import date

from backend.sitehub import create_app, db
from backend.sitehub.auth_utils import encode_auth_token
from backend.sitehub.models import Organization, Profile, Site, SiteAssignment
from backend.sitehub.services.user_service import hash_password

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'JWT_SECRET_KEY': 'test-secret',
    'MAX_UPLOAD_MB': 5,
    'LOG_LEVEL': 'WARNING',
}

PASSWORD = 'password123'


class ApiTestCase(unittest.TestCase):
    """
    Flask test client on an in-memory database with two organizations.

    Organization A owns ``site_a`` (with an assigned worker and site manager);
    organization B owns ``site_b``. ``restricted_admin`` is an admin of A.
    """

    def setUp(self):
        self.app = create_app(TEST_CONFIG)
        self.client = self.app.test_client()
        self.app_context = self.app.app_context()
        self.app_context.push()
        db.create_all()

        self.org_a = self.make_organization('협력사 A')
        self.org_b = self.make_organization('협력사 B')

        self.system_admin = self.make_user('root@example.com', '시스템 관리자', 'system_admin')
        self.restricted_admin = self.make_user('admin-a@example.com', 'A 관리자', 'admin', self.org_a,
                                               is_restricted=True)
        self.worker = self.make_user('worker@example.com', '이작업', 'worker', self.org_a)
        self.manager = self.make_user('manager@example.com', '김현장', 'site_manager', self.org_a)
        self.partner = self.make_user('partner@example.com', '박협력', 'partner', self.org_a)

        self.site_a = self.make_site('A 현장', self.org_a)
        self.site_b = self.make_site('B 현장', self.org_b)
        self.assign(self.site_a, self.worker, 'worker')
        self.assign(self.site_a, self.manager, 'site_manager')

    def tearDown(self):
        db.session.remove()
        db.drop_all()
        self.app_context.pop()

    def make_organization(self, name):
        organization = Organization(name=name, type='partner', is_active=True)
        db.session.add(organization)
        db.session.commit()
        return organization

    def make_user(self, email, full_name, role, organization=None, is_restricted=False):
        profile = Profile(
            email=email,
            full_name=full_name,
            role=role,
            status='active',
            is_restricted=is_restricted,
            organization_id=organization.id if organization else None,
            password_hash=hash_password(PASSWORD),
        )
        db.session.add(profile)
        db.session.commit()
        return profile

    def make_site(self, name, organization):
        site = Site(
            name=name,
            address='서울특별시 중구 세종대로 110',
            organization_id=organization.id,
            status='active',
            start_date=date(2026, 1, 1),
        )
        db.session.add(site)
        db.session.commit()
        return site

    def assign(self, site, user, role):
        db.session.add(SiteAssignment(site_id=site.id, user_id=user.id, role=role, is_active=True))
        db.session.commit()

    def headers(self, user):
        return {'Authorization': f'Bearer {encode_auth_token(user.id)}'}

    def save_report(self, user, site, work_date, workers):
        return self.client.post('/api/daily-reports', headers=self.headers(user), json={
            'site_id': str(site.id),
            'work_date': work_date,
            'workers': workers,
        })
