import unittest
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock

from werkzeug.security import check_password_hash

from backend.sitehub.errors import AppError
from backend.sitehub.services.access_guard import AuthContext, OrgAccessGuard
from backend.sitehub.services.user_service import UserService

ORG_A = uuid.uuid4()


def plain_admin():
    return AuthContext(user_id=uuid.uuid4(), role='admin', organization_id=ORG_A)


class TestUserService(unittest.TestCase):
    def setUp(self):
        self.profile_repo = MagicMock()
        self.profiles = {}
        self.profile_repo.get_by_ids.side_effect = lambda ids: [self.profiles[str(i)] for i in ids]
        self.audit_repo = MagicMock()
        guard = OrgAccessGuard(MagicMock(), self.profile_repo)
        self.service = UserService(self.profile_repo, MagicMock(), MagicMock(), guard, self.audit_repo)

    def add_profile(self, role):
        profile = SimpleNamespace(id=uuid.uuid4(), role=role, organization_id=ORG_A)
        self.profiles[str(profile.id)] = profile
        return profile

    def test_bulk_changes_skip_system_admin_for_plain_admin(self):
        root = self.add_profile('system_admin')
        worker = self.add_profile('worker')
        ids = [worker.id, root.id]

        with self.assertRaises(AppError) as ctx:
            self.service.update_roles(plain_admin(), ids, 'worker')
        self.assertEqual(ctx.exception.status_code, 403)
        with self.assertRaises(AppError) as ctx:
            self.service.update_status(plain_admin(), ids, 'suspended')
        self.assertEqual(ctx.exception.status_code, 403)

        self.profile_repo.update_many.assert_not_called()
        self.audit_repo.log_event.assert_not_called()

    def test_system_admin_may_change_system_admins(self):
        root = self.add_profile('system_admin')
        self.profile_repo.update_many.return_value = 1
        auth = AuthContext(user_id=uuid.uuid4(), role='system_admin')
        self.assertEqual(self.service.update_status(auth, [root.id], 'inactive'), 1)
        self.profile_repo.update_many.assert_called_once_with([root.id], status='inactive')

    def test_only_system_admin_grants_system_admin(self):
        worker = self.add_profile('worker')
        with self.assertRaises(AppError) as ctx:
            self.service.update_roles(plain_admin(), [worker.id], 'system_admin')
        self.assertEqual(ctx.exception.status_code, 403)
        with self.assertRaises(AppError) as ctx:
            self.service.update_roles(plain_admin(), [worker.id], 'owner')
        self.assertEqual(ctx.exception.status_code, 400)
        self.profile_repo.update_many.assert_not_called()

    def test_delete_refuses_admin_accounts(self):
        admin = self.add_profile('admin')
        with self.assertRaises(AppError) as ctx:
            self.service.delete_users(plain_admin(), [admin.id])
        self.assertEqual(ctx.exception.status_code, 403)
        self.profile_repo.delete_many.assert_not_called()

    def test_create_user_hashes_temporary_password(self):
        self.profile_repo.get_by_email.return_value = None
        self.profile_repo.create.side_effect = lambda **fields: SimpleNamespace(
            id=uuid.uuid4(), role=fields['role'], organization_id=fields['organization_id'])

        profile, temp_password = self.service.create_user(plain_admin(), {
            'email': ' Worker@Example.com ', 'full_name': ' 이작업 ', 'phone': '01012345678',
        })

        fields = self.profile_repo.create.call_args.kwargs
        self.assertEqual(fields['email'], 'worker@example.com')
        self.assertEqual(fields['full_name'], '이작업')
        self.assertEqual(fields['phone'], '010-1234-5678')
        self.assertEqual(fields['status'], 'active')
        self.assertNotEqual(fields['password_hash'], temp_password)
        self.assertTrue(check_password_hash(fields['password_hash'], temp_password))
        self.assertEqual(profile.role, 'worker')

    def test_create_user_rejects_duplicate_email(self):
        self.profile_repo.get_by_email.return_value = SimpleNamespace(id=uuid.uuid4())
        with self.assertRaises(AppError) as ctx:
            self.service.create_user(plain_admin(), {'email': 'worker@example.com', 'full_name': '이작업'})
        self.assertEqual(ctx.exception.status_code, 409)
        self.profile_repo.create.assert_not_called()


if __name__ == '__main__':
    unittest.main()
