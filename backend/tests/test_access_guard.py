import unittest
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

from backend.sitehub.errors import AppError
from backend.sitehub.services.access_guard import (
    AuthContext,
    OrgAccessGuard,
    assert_org_access,
    scope_organization_id,
)
from backend.sitehub.services.site_service import SiteService
from backend.sitehub.services.user_service import UserService


ORG_A = uuid.uuid4()
ORG_B = uuid.uuid4()


def restricted_admin(org_id=ORG_A):
    return AuthContext(user_id=uuid.uuid4(), role='admin', organization_id=org_id,
                       is_restricted=True, restricted_org_id=org_id)


def system_admin():
    return AuthContext(user_id=uuid.uuid4(), role='system_admin', organization_id=None)


class TestAuthContext(unittest.TestCase):
    def test_partner_roles_are_restricted(self):
        profile = SimpleNamespace(id=uuid.uuid4(), role='partner', organization_id=ORG_A,
                                  is_restricted=False, full_name='협력사')
        auth = AuthContext.from_profile(profile)
        self.assertTrue(auth.is_restricted)
        self.assertEqual(auth.restricted_org_id, ORG_A)
        self.assertFalse(auth.is_admin)

    def test_unrestricted_admin(self):
        profile = SimpleNamespace(id=uuid.uuid4(), role='admin', organization_id=ORG_A,
                                  is_restricted=False, full_name='관리자')
        auth = AuthContext.from_profile(profile)
        self.assertTrue(auth.is_admin)
        self.assertFalse(auth.is_restricted)
        self.assertIsNone(auth.restricted_org_id)


class TestOrgChecks(unittest.TestCase):
    def test_assert_org_access(self):
        assert_org_access(restricted_admin(), ORG_A)
        assert_org_access(system_admin(), ORG_B)
        with self.assertRaises(AppError) as ctx:
            assert_org_access(restricted_admin(), ORG_B)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_target_without_organization_is_denied_for_restricted(self):
        with self.assertRaises(AppError):
            assert_org_access(restricted_admin(), None)

    def test_restricted_without_organization_is_denied(self):
        auth = AuthContext(user_id=uuid.uuid4(), role='partner', is_restricted=True)
        with self.assertRaises(AppError) as ctx:
            assert_org_access(auth, ORG_A)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_scope_organization_id(self):
        self.assertEqual(scope_organization_id(restricted_admin()), ORG_A)
        self.assertEqual(scope_organization_id(system_admin(), str(ORG_B)), ORG_B)
        with self.assertRaises(AppError):
            scope_organization_id(restricted_admin(), ORG_B)


class TestOrgAccessGuard(unittest.TestCase):
    def setUp(self):
        self.site_repo = MagicMock()
        self.profile_repo = MagicMock()
        self.guard = OrgAccessGuard(self.site_repo, self.profile_repo)

    def test_missing_site_is_not_found(self):
        self.site_repo.get_by_id.return_value = None
        with self.assertRaises(AppError) as ctx:
            self.guard.ensure_site_accessible(restricted_admin(), uuid.uuid4())
        self.assertEqual(ctx.exception.status_code, 404)

    def test_bulk_check_rejects_unknown_or_foreign_sites(self):
        site_ids = [uuid.uuid4(), uuid.uuid4()]
        self.site_repo.get_by_ids.return_value = [SimpleNamespace(id=site_ids[0], organization_id=ORG_A)]
        with self.assertRaises(AppError):
            self.guard.ensure_sites_accessible(restricted_admin(), site_ids)

        self.site_repo.get_by_ids.return_value = [
            SimpleNamespace(id=site_ids[0], organization_id=ORG_A),
            SimpleNamespace(id=site_ids[1], organization_id=ORG_B),
        ]
        with self.assertRaises(AppError):
            self.guard.ensure_sites_accessible(restricted_admin(), site_ids)

    def test_unrestricted_callers_skip_lookups(self):
        self.guard.ensure_sites_accessible(system_admin(), [uuid.uuid4()])
        self.assertIsNone(self.guard.accessible_site_ids(system_admin()))
        self.site_repo.get_by_ids.assert_not_called()

    def test_filter_records_by_site_org(self):
        own_site, other_site = uuid.uuid4(), uuid.uuid4()
        self.site_repo.get_ids_for_organization.return_value = [own_site]
        records = [SimpleNamespace(site_id=own_site), SimpleNamespace(site_id=other_site),
                   SimpleNamespace(site_id=None)]
        filtered = self.guard.filter_records_by_site_org(restricted_admin(), records)
        self.assertEqual(filtered, [records[0]])


class TestRestrictedWritesAreRejectedBeforeMutation(unittest.TestCase):
    def test_update_site_of_other_organization(self):
        site_repo = MagicMock()
        site_repo.get_by_id.return_value = SimpleNamespace(id=uuid.uuid4(), organization_id=ORG_B)
        guard = OrgAccessGuard(site_repo, MagicMock())
        service = SiteService(site_repo, MagicMock(), MagicMock(), guard, MagicMock())

        with self.assertRaises(AppError) as ctx:
            service.update_site(restricted_admin(), uuid.uuid4(), {'name': '변경'})

        self.assertEqual(ctx.exception.status_code, 403)
        site_repo.update.assert_not_called()

    def _site_service(self, organization_id=ORG_B):
        site_repo = MagicMock()
        site_repo.get_by_ids.side_effect = lambda ids: [
            SimpleNamespace(id=site_id, organization_id=organization_id) for site_id in ids
        ]
        guard = OrgAccessGuard(site_repo, MagicMock())
        audit_repo = MagicMock()
        return SiteService(site_repo, MagicMock(), MagicMock(), guard, audit_repo), site_repo, audit_repo

    def test_bulk_site_changes_on_other_organization(self):
        service, site_repo, audit_repo = self._site_service()
        site_ids = [uuid.uuid4()]
        for action in (
            lambda: service.delete_sites(restricted_admin(), site_ids),
            lambda: service.restore_sites(restricted_admin(), site_ids),
            lambda: service.purge_sites(restricted_admin(), site_ids),
            lambda: service.update_status(restricted_admin(), site_ids, 'completed'),
        ):
            with self.assertRaises(AppError) as ctx:
                action()
            self.assertEqual(ctx.exception.status_code, 403)

        site_repo.soft_delete_many.assert_not_called()
        site_repo.restore_many.assert_not_called()
        site_repo.delete_many.assert_not_called()
        site_repo.update_many.assert_not_called()
        audit_repo.log_event.assert_not_called()

    def test_bulk_site_changes_on_own_organization(self):
        service, site_repo, _ = self._site_service(ORG_A)
        site_repo.update_many.return_value = 1
        self.assertEqual(service.update_status(restricted_admin(), [uuid.uuid4()], 'completed'), 1)

    def test_bulk_user_changes_on_other_organization(self):
        profile_repo = MagicMock()
        profile_repo.get_by_ids.side_effect = lambda ids: [
            SimpleNamespace(id=user_id, organization_id=ORG_B, role='worker') for user_id in ids
        ]
        guard = OrgAccessGuard(MagicMock(), profile_repo)
        service = UserService(profile_repo, MagicMock(), MagicMock(), guard, MagicMock())
        user_ids = [uuid.uuid4()]
        for action in (
            lambda: service.delete_users(restricted_admin(), user_ids),
            lambda: service.update_roles(restricted_admin(), user_ids, 'site_manager'),
            lambda: service.update_status(restricted_admin(), user_ids, 'inactive'),
        ):
            with self.assertRaises(AppError) as ctx:
                action()
            self.assertEqual(ctx.exception.status_code, 403)

        profile_repo.delete_many.assert_not_called()
        profile_repo.update_many.assert_not_called()


if __name__ == '__main__':
    unittest.main()
