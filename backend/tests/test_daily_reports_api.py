import unittest

from backend.sitehub import db
from backend.sitehub.models import DailyReport, Notification

from backend.tests.api_case import ApiTestCase


class TestDailyReportsApi(ApiTestCase):
    def _workers(self):
        return [
            {'worker_name': '이작업', 'labor_hours': 1.0, 'worker_id': str(self.worker.id)},
            {'worker_name': '최일용', 'labor_hours': 0.5},
        ]

    def test_save_is_create_or_update_per_author_site_and_date(self):
        response = self.save_report(self.worker, self.site_a, '2026-03-02', self._workers())
        self.assertEqual(response.status_code, 201)
        data = response.get_json()['data']
        self.assertEqual(data['status'], 'draft')
        self.assertEqual(data['total_workers'], 2)
        self.assertEqual(data['member_name'], '이작업')

        response = self.save_report(self.worker, self.site_a, '2026-03-02', self._workers()[:1])
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['id'], data['id'])
        self.assertEqual(len(response.get_json()['data']['workers']), 1)
        self.assertEqual(db.session.query(DailyReport).count(), 1)

    def test_invalid_labor_hours_rejected(self):
        response = self.save_report(self.worker, self.site_a, '2026-03-02', [
            {'worker_name': '이작업', 'labor_hours': 0.3},
        ])
        self.assertEqual(response.status_code, 400)
        self.assertEqual(db.session.query(DailyReport).count(), 0)

    def test_unassigned_site_rejected(self):
        response = self.save_report(self.worker, self.site_b, '2026-03-02', self._workers())
        self.assertEqual(response.status_code, 403)

    def test_submit_approve_flow_notifies(self):
        report_id = self.save_report(self.worker, self.site_a, '2026-03-02', self._workers()).get_json()['data']['id']

        response = self.client.post(f'/api/daily-reports/{report_id}/submit', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['status'], 'submitted')

        response = self.client.get('/api/notifications/unread-count', headers=self.headers(self.manager))
        self.assertEqual(response.get_json()['data']['count'], 1)

        # Submitted reports can no longer be edited by the author
        response = self.client.put(f'/api/daily-reports/{report_id}', headers=self.headers(self.worker),
                                   json={'issues': '우천'})
        self.assertEqual(response.status_code, 409)

        # Workers cannot approve
        response = self.client.post(f'/api/daily-reports/{report_id}/approve', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 403)

        response = self.client.post(f'/api/daily-reports/{report_id}/reject', headers=self.headers(self.manager),
                                    json={})
        self.assertEqual(response.status_code, 400)

        response = self.client.post(f'/api/daily-reports/{report_id}/approve', headers=self.headers(self.manager),
                                    json={'comments': '확인'})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['status'], 'approved')

        titles = [n.title for n in db.session.query(Notification).filter_by(user_id=self.worker.id)]
        self.assertEqual(titles, ['작업일지 승인'])

    def test_restricted_admin_is_scoped_to_own_organization(self):
        own = self.save_report(self.worker, self.site_a, '2026-03-02', self._workers()).get_json()['data']
        other = self.save_report(self.system_admin, self.site_b, '2026-03-02', [
            {'worker_name': '타사작업자', 'labor_hours': 1.0},
        ]).get_json()['data']

        response = self.client.get('/api/admin/daily-reports', headers=self.headers(self.restricted_admin))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['id'] for r in response.get_json()['data']], [own['id']])

        response = self.client.get('/api/admin/daily-reports', headers=self.headers(self.system_admin))
        self.assertEqual(response.get_json()['meta']['total'], 2)

        response = self.client.get(f"/api/admin/daily-reports/{other['id']}", headers=self.headers(self.restricted_admin))
        self.assertEqual(response.status_code, 403)

        response = self.client.delete(f"/api/admin/daily-reports/{other['id']}",
                                      headers=self.headers(self.restricted_admin))
        self.assertEqual(response.status_code, 403)
        self.assertEqual(db.session.query(DailyReport).filter_by(site_id=self.site_b.id).count(), 1)

    def test_non_admin_cannot_use_admin_listing(self):
        response = self.client.get('/api/admin/daily-reports', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 403)

    def test_date_range_filter(self):
        self.save_report(self.worker, self.site_a, '2026-03-02', self._workers())
        self.save_report(self.worker, self.site_a, '2026-03-10', self._workers())
        response = self.client.get('/api/daily-reports?start_date=2026-03-05&end_date=2026-03-31',
                                   headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 200)
        self.assertEqual([r['work_date'] for r in response.get_json()['data']], ['2026-03-10'])

        response = self.client.get('/api/daily-reports?start_date=03/05/2026', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 400)


if __name__ == '__main__':
    unittest.main()
