import unittest

from backend.sitehub.errors import AppError
from backend.sitehub.services.validation import (
    has_permission,
    require_valid,
    validate_business_registration_number,
    validate_document_metadata,
    validate_korean_phone_number,
    validate_labor_hours,
)


class TestPhoneNumber(unittest.TestCase):
    def test_formats_and_detects_carrier(self):
        result = validate_korean_phone_number('010 1234 5678')
        self.assertTrue(result['is_valid'])
        self.assertEqual(result['formatted'], '010-1234-5678')

        old = validate_korean_phone_number('0111234567')
        self.assertEqual(old['formatted'], '011-123-4567')
        self.assertEqual(old['carrier'], 'SKT')

    def test_rejects_landline_and_zero_blocks(self):
        self.assertFalse(validate_korean_phone_number('02-123-4567')['is_valid'])
        self.assertFalse(validate_korean_phone_number('010-0000-1234')['is_valid'])


class TestBusinessRegistrationNumber(unittest.TestCase):
    def test_format_only(self):
        result = validate_business_registration_number('1234567890')
        self.assertTrue(result['is_valid'])
        self.assertEqual(result['formatted'], '123-45-67890')

    def test_checksum(self):
        self.assertTrue(validate_business_registration_number('123-45-67891', check_checksum=True)['is_valid'])
        self.assertFalse(validate_business_registration_number('123-45-67890', check_checksum=True)['is_valid'])

    def test_rejects_wrong_length(self):
        self.assertFalse(validate_business_registration_number('12345')['is_valid'])


class TestLaborHours(unittest.TestCase):
    def test_quarter_steps_up_to_two(self):
        result = validate_labor_hours(1.25)
        self.assertTrue(result['is_valid'])
        self.assertEqual(result['hours'], 10.0)
        self.assertTrue(result['has_overtime'])
        self.assertEqual(result['overtime_hours'], 2.0)

    def test_rejects_invalid_values(self):
        for value in (0, -1, 0.3, 2.25, 'abc'):
            self.assertFalse(validate_labor_hours(value)['is_valid'], value)


class TestDocumentMetadata(unittest.TestCase):
    def test_valid_pdf(self):
        result = validate_document_metadata('안전 교육 자료', 'application/pdf', 2048)
        self.assertTrue(result['is_valid'])
        self.assertTrue(result['has_korean_text'])

    def test_size_limit_uses_smaller_of_configured_and_absolute(self):
        result = validate_document_metadata('doc', 'application/pdf', 3 * 1024 * 1024, max_bytes=2 * 1024 * 1024)
        self.assertFalse(result['is_valid'])
        self.assertEqual(result['max_size_mb'], 2)

    def test_rejects_unknown_mime_type(self):
        self.assertFalse(validate_document_metadata('doc', 'application/x-msdownload', 10)['is_valid'])

    def test_require_valid_raises_app_error(self):
        with self.assertRaises(AppError) as ctx:
            require_valid(validate_document_metadata('', 'application/pdf', 10))
        self.assertEqual(ctx.exception.status_code, 400)


class TestPermissions(unittest.TestCase):
    def test_matrix(self):
        self.assertTrue(has_permission('system_admin', 'anything', 'delete'))
        self.assertTrue(has_permission('worker', 'daily_report', 'create'))
        self.assertFalse(has_permission('worker', 'daily_report', 'approve'))
        self.assertFalse(has_permission('unknown', 'site', 'read'))

    def test_site_manager_needs_assignment_for_site(self):
        self.assertTrue(has_permission('site_manager', 'daily_report', 'approve', ['s1'], 's1'))
        self.assertFalse(has_permission('site_manager', 'daily_report', 'approve', ['s1'], 's2'))


if __name__ == '__main__':
    unittest.main()
