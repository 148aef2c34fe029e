import re
import unittest
import uuid
from datetime import date
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

from backend.sitehub.errors import AppError
from backend.sitehub.services.access_guard import AuthContext
from backend.sitehub.services.material_service import MaterialService, generate_request_number


class TestRequestNumber(unittest.TestCase):
    def test_sequence_suffix(self):
        self.assertEqual(generate_request_number(date(2026, 3, 5), 7), 'MR-20260305-0007')

    def test_random_suffix(self):
        self.assertRegex(generate_request_number(date(2026, 3, 5)), re.compile(r'^MR-20260305-[A-Z0-9]{4}$'))


class TestMaterialService(unittest.TestCase):
    def setUp(self):
        self.material_repo = MagicMock()
        self.request_repo = MagicMock()
        self.guard = MagicMock()
        self.notifier = MagicMock()
        self.service = MaterialService(
            self.material_repo, self.request_repo, MagicMock(), self.guard, self.notifier, MagicMock()
        )
        self.auth = AuthContext(user_id=uuid.uuid4(), role='admin')

    @patch('backend.sitehub.services.material_service.generate_request_number')
    def test_next_request_number_retries_on_collision(self, mock_generate):
        mock_generate.side_effect = ['MR-20260305-0001', 'MR-20260305-AB12']
        self.request_repo.count_for_day.return_value = 0
        self.request_repo.request_number_exists.side_effect = [True, False]
        self.assertEqual(self.service._next_request_number(date(2026, 3, 5)), 'MR-20260305-AB12')

    def test_items_need_positive_quantity(self):
        with self.assertRaises(AppError):
            self.service._normalize_items([{'material_id': str(uuid.uuid4()), 'requested_quantity': 0}])
        with self.assertRaises(AppError):
            self.service._normalize_items([])

    def test_reject_marks_requests_cancelled_with_suffix(self):
        requests = [SimpleNamespace(id=uuid.uuid4(), site_id=uuid.uuid4(), status='pending', notes=None)]
        self.request_repo.get_by_ids.return_value = requests

        self.service.process_requests(self.auth, [requests[0].id], approve=False, comments='재고 부족')

        self.assertEqual(requests[0].status, 'cancelled')
        self.assertEqual(requests[0].notes, '재고 부족 (관리자 거부)')
        self.request_repo.commit.assert_called_once()
        self.notifier.material_requests_processed.assert_called_once_with(requests, False)

    def test_unknown_request_ids_are_not_found(self):
        self.request_repo.get_by_ids.return_value = []
        with self.assertRaises(AppError) as ctx:
            self.service.process_requests(self.auth, [uuid.uuid4()], approve=True)
        self.assertEqual(ctx.exception.status_code, 404)
        self.request_repo.commit.assert_not_called()

    def test_processed_requests_cannot_be_processed_again(self):
        requests = [
            SimpleNamespace(id=uuid.uuid4(), site_id=uuid.uuid4(), status='pending', notes=None),
            SimpleNamespace(id=uuid.uuid4(), site_id=uuid.uuid4(), status='approved', notes=None),
        ]
        self.request_repo.get_by_ids.return_value = requests

        with self.assertRaises(AppError) as ctx:
            self.service.process_requests(self.auth, [r.id for r in requests], approve=False)

        self.assertEqual(ctx.exception.status_code, 409)
        self.assertEqual([r.status for r in requests], ['pending', 'approved'])
        self.request_repo.commit.assert_not_called()
        self.notifier.material_requests_processed.assert_not_called()


if __name__ == '__main__':
    unittest.main()
