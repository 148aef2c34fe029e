import unittest

from backend.sitehub import create_app


class RouteWiringTests(unittest.TestCase):
    def test_routes_registered(self):
        app = create_app({'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:'})
        rules = {rule.rule for rule in app.url_map.iter_rules()}

        expected = {
            '/api/health',
            '/metrics',
            '/api/auth/login',
            '/api/auth/me',
            '/api/admin/organizations',
            '/api/admin/users',
            '/api/admin/users/<uuid:user_id>/reset-password',
            '/api/admin/sites',
            '/api/admin/sites/bulk-delete',
            '/api/admin/sites/bulk-purge',
            '/api/admin/sites/<uuid:site_id>/assignments',
            '/api/admin/sites/<uuid:site_id>/available-users',
            '/api/daily-reports',
            '/api/daily-reports/<uuid:report_id>/submit',
            '/api/admin/daily-reports',
            '/api/documents',
            '/api/documents/<uuid:document_id>/download',
            '/api/documents/<uuid:document_id>/share',
            '/api/documents/shared-with-me',
            '/api/materials',
            '/api/materials/requests',
            '/api/admin/materials/requests/approve',
            '/api/admin/salary/rules',
            '/api/admin/salary/calculate',
            '/api/admin/salary/records',
            '/api/admin/salary/records/mark-paid',
            '/api/admin/salary/tax-rates/<uuid:rate_id>',
            '/api/admin/salary/worker-settings',
            '/api/admin/salary/personal/calculate',
            '/api/admin/salary/snapshots',
            '/api/admin/salary/statements/export',
            '/api/admin/salary/output-summary',
            '/api/notifications/changes',
            '/api/mobile/site-info',
            '/api/mobile/payslips',
            '/api/partner/labor-by-site',
            '/api/admin/audit-logs',
        }

        for route in expected:
            self.assertIn(route, rules)


if __name__ == '__main__':
    unittest.main()
