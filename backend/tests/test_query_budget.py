import unittest
from datetime import date

from backend.sitehub import db
from backend.sitehub.models import SalaryRecord
from backend.sitehub.observability import QueryCounter

from backend.tests.api_case import ApiTestCase


class TestQueryBudget(ApiTestCase):
    RECORDS_QUERY_BUDGET = 8

    def add_records(self, count, offset=0):
        for day in range(offset + 1, offset + count + 1):
            worker = self.make_user(f'daily{day}@example.com', f'일용{day}', 'worker', self.org_a)
            db.session.add(SalaryRecord(
                worker_id=worker.id,
                site_id=self.site_a.id,
                work_date=date(2026, 3, day),
                labor_hours=1.0,
                regular_hours=1.0,
                base_pay=150000,
                total_pay=150000,
            ))
        db.session.commit()

    def count_queries(self, url, user):
        with QueryCounter(db.engine) as counter:
            response = self.client.get(url, headers=self.headers(user))
        self.assertEqual(response.status_code, 200)
        return counter.count

    def test_salary_records_query_count_does_not_grow_with_rows(self):
        url = '/api/admin/salary/records?per_page=50'
        self.add_records(2)
        small = self.count_queries(url, self.restricted_admin)
        self.add_records(10, offset=2)
        large = self.count_queries(url, self.restricted_admin)

        self.assertEqual(small, large)
        self.assertLessEqual(large, self.RECORDS_QUERY_BUDGET)

    def test_site_report_listing_query_count_does_not_grow_with_rows(self):
        url = '/api/admin/daily-reports?per_page=50'
        for day in (2, 3):
            self.save_report(self.worker, self.site_a, f'2026-03-0{day}', [{'worker_name': '이작업', 'labor_hours': 1}])
        small = self.count_queries(url, self.system_admin)
        for day in range(4, 10):
            self.save_report(self.worker, self.site_a, f'2026-03-0{day}', [{'worker_name': '이작업', 'labor_hours': 1}])
        large = self.count_queries(url, self.system_admin)

        self.assertEqual(small, large)


if __name__ == '__main__':
    unittest.main()
