import unittest

from backend.tests.api_case import ApiTestCase

MARCH = 'date_from=2026-03-01&date_to=2026-03-31'


class TestMobileApi(ApiTestCase):
    def test_site_info_lists_site_managers(self):
        response = self.client.get('/api/mobile/site-info', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 200)
        data = response.get_json()['data']
        self.assertEqual(data['site']['name'], 'A 현장')
        self.assertEqual([m['full_name'] for m in data['managers']], ['김현장'])

    def test_site_info_without_assignment(self):
        response = self.client.get('/api/mobile/site-info', headers=self.headers(self.partner))
        self.assertEqual(response.status_code, 200)
        self.assertIsNone(response.get_json()['data'])

    def test_work_logs_sum_labor_per_day(self):
        self.save_report(self.manager, self.site_a, '2026-03-02', [
            {'worker_name': '이작업', 'labor_hours': 1.0, 'worker_id': str(self.worker.id)},
        ])
        self.save_report(self.manager, self.site_a, '2026-03-03', [
            {'worker_name': '이작업', 'labor_hours': 0.5},
        ])
        self.save_report(self.manager, self.site_a, '2026-04-01', [
            {'worker_name': '이작업', 'labor_hours': 1.0, 'worker_id': str(self.worker.id)},
        ])

        response = self.client.get('/api/mobile/work-logs?year=2026&month=3', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 200)
        data = response.get_json()['data']
        self.assertEqual(data['work_days'], 2)
        self.assertEqual(data['total_labor_hours'], 1.5)
        self.assertEqual([log['work_date'] for log in data['logs']], ['2026-03-02', '2026-03-03'])
        self.assertEqual(data['logs'][0]['sites'], ['A 현장'])

    def test_work_logs_reject_bad_month(self):
        response = self.client.get('/api/mobile/work-logs?year=2026&month=13', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 400)


class TestPartnerApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.save_report(self.manager, self.site_a, '2026-03-02', [
            {'worker_name': '이작업', 'labor_hours': 1.0, 'worker_id': str(self.worker.id)},
            {'worker_name': '김현장', 'labor_hours': 0.5},
        ])
        self.save_report(self.system_admin, self.site_b, '2026-03-02', [
            {'worker_name': '외부 인력', 'labor_hours': 1.0},
        ])

    def test_partner_sees_own_organization_sites(self):
        response = self.client.get(f'/api/partner/labor-by-site?{MARCH}', headers=self.headers(self.partner))
        self.assertEqual(response.status_code, 200)
        data = response.get_json()['data']
        self.assertEqual(data['organization_id'], str(self.org_a.id))
        self.assertEqual(len(data['sites']), 1)
        site = data['sites'][0]
        self.assertEqual(site['site_id'], str(self.site_a.id))
        self.assertEqual(site['total_labor_hours'], 1.5)
        self.assertEqual(site['worker_count'], 2)
        self.assertEqual(site['report_count'], 1)

    def test_partner_cannot_ask_for_another_organization(self):
        response = self.client.get(f'/api/partner/labor-by-site?{MARCH}&organization_id={self.org_b.id}',
                                   headers=self.headers(self.partner))
        self.assertEqual(response.get_json()['data']['organization_id'], str(self.org_a.id))

    def test_workers_are_forbidden(self):
        response = self.client.get(f'/api/partner/labor-by-site?{MARCH}', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 403)

    def test_unrestricted_admin_must_pick_organization(self):
        headers = self.headers(self.system_admin)
        response = self.client.get(f'/api/partner/labor-by-site?{MARCH}', headers=headers)
        self.assertEqual(response.status_code, 400)
        response = self.client.get(f'/api/partner/labor-by-site?{MARCH}&organization_id={self.org_b.id}',
                                   headers=headers)
        self.assertEqual(response.get_json()['data']['sites'][0]['total_labor_hours'], 1.0)


class TestAuditLogsApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        outsider = self.make_user('outsider@example.com', '최외부', 'worker', self.org_b)
        headers = self.headers(self.system_admin)
        self.client.post('/api/admin/users/bulk-status', headers=headers,
                         json={'ids': [str(outsider.id)], 'status': 'inactive'})
        self.client.post('/api/admin/users/bulk-status', headers=self.headers(self.restricted_admin),
                         json={'ids': [str(self.worker.id)], 'status': 'inactive'})
        self.client.post(f'/api/admin/organizations/{self.org_b.id}/deactivate', headers=headers)

    def test_system_admin_sees_every_event(self):
        response = self.client.get('/api/admin/audit-logs', headers=self.headers(self.system_admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['meta']['total'], 3)

        response = self.client.get('/api/admin/audit-logs?entity_type=ORGANIZATION',
                                   headers=self.headers(self.system_admin))
        events = response.get_json()['data']
        self.assertEqual([e['event_type'] for e in events], ['DEACTIVATE'])

    def test_restricted_admin_sees_own_organization(self):
        response = self.client.get('/api/admin/audit-logs', headers=self.headers(self.restricted_admin))
        events = response.get_json()['data']
        self.assertEqual(len(events), 1)
        self.assertEqual(events[0]['organization_id'], str(self.org_a.id))
        self.assertEqual(events[0]['actor_user_id'], str(self.restricted_admin.id))

    def test_non_admins_are_forbidden(self):
        response = self.client.get('/api/admin/audit-logs', headers=self.headers(self.partner))
        self.assertEqual(response.status_code, 403)


if __name__ == '__main__':
    unittest.main()
