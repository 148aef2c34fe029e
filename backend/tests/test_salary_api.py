import csv
import io
import unittest

from openpyxl import load_workbook

from backend.sitehub import db
from backend.sitehub.models import EmploymentTaxRate, Notification, SalaryRecord, SalarySnapshot

from backend.tests.api_case import ApiTestCase

MONTH = {'date_from': '2026-03-01', 'date_to': '2026-03-31'}


class TestSalaryApi(ApiTestCase):
    def setUp(self):
        super().setUp()
        # One linked line and one line matched to the site manager by name
        self.save_report(self.worker, self.site_a, '2026-03-02', [
            {'worker_name': '이작업', 'labor_hours': 1.5, 'worker_id': str(self.worker.id)},
            {'worker_name': '김현장', 'labor_hours': 1.0},
        ])
        self.admin_headers = self.headers(self.system_admin)

    def _calculate(self):
        return self.client.post('/api/admin/salary/calculate', headers=self.admin_headers, json=MONTH)

    def _records(self):
        response = self.client.get('/api/admin/salary/records?date_from=2026-03-01&date_to=2026-03-31',
                                   headers=self.admin_headers)
        return {r['worker_name']: r for r in response.get_json()['data']}

    def test_calculate_uses_default_daily_pay(self):
        response = self._calculate()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['count'], 2)

        records = self._records()
        self.assertEqual(records['이작업']['total_pay'], 225000)
        self.assertEqual(records['이작업']['overtime_hours'], 0.5)
        self.assertEqual(records['김현장']['total_pay'], 150000)

    def test_calculate_rejects_inverted_range(self):
        response = self.client.post('/api/admin/salary/calculate', headers=self.admin_headers,
                                    json={'date_from': '2026-03-31', 'date_to': '2026-03-01'})
        self.assertEqual(response.status_code, 400)

    def test_site_rule_overrides_default(self):
        response = self.client.post('/api/admin/salary/rules', headers=self.admin_headers, json={
            'rule_name': 'A 현장 일당',
            'rule_type': 'daily_rate',
            'base_amount': 180000,
            'site_id': str(self.site_a.id),
        })
        self.assertEqual(response.status_code, 201)
        self._calculate()
        self.assertEqual(self._records()['김현장']['total_pay'], 180000)

    def test_paid_requires_approved_and_settled_records_survive_recalculation(self):
        self._calculate()
        record_id = self._records()['이작업']['id']

        response = self.client.post('/api/admin/salary/records/mark-paid', headers=self.admin_headers,
                                    json={'ids': [record_id]})
        self.assertEqual(response.status_code, 409)

        response = self.client.post('/api/admin/salary/records/approve', headers=self.admin_headers,
                                    json={'ids': [record_id]})
        self.assertEqual(response.status_code, 200)
        response = self.client.post('/api/admin/salary/records/mark-paid', headers=self.admin_headers,
                                    json={'ids': [record_id]})
        self.assertEqual(response.status_code, 200)

        response = self._calculate()
        self.assertEqual(response.get_json()['data']['count'], 1)
        self.assertEqual(db.session.query(SalaryRecord).count(), 2)
        self.assertEqual(self._records()['이작업']['status'], 'paid')

    def test_workers_cannot_use_salary_admin(self):
        response = self.client.get('/api/admin/salary/records', headers=self.headers(self.worker))
        self.assertEqual(response.status_code, 403)

    def test_personal_calculation_uses_worker_setting(self):
        response = self.client.post('/api/admin/salary/personal/calculate', headers=self.admin_headers, json={
            'worker_id': str(self.worker.id), 'work_date': '2026-03-02', 'labor_hours': 1.0,
        })
        self.assertEqual(response.status_code, 404)

        response = self.client.post('/api/admin/salary/worker-settings', headers=self.admin_headers, json={
            'worker_id': str(self.worker.id),
            'employment_type': 'freelancer',
            'daily_rate': 200000,
            'effective_date': '2026-01-01',
        })
        self.assertEqual(response.status_code, 201)

        response = self.client.post('/api/admin/salary/personal/calculate', headers=self.admin_headers, json={
            'worker_id': str(self.worker.id), 'work_date': '2026-03-02', 'labor_hours': 1.0,
        })
        self.assertEqual(response.status_code, 200)
        result = response.get_json()['data']
        self.assertEqual(result['gross_pay'], 200000)
        self.assertEqual(result['income_tax'], 6600)
        self.assertEqual(result['resident_tax'], 660)
        self.assertEqual(result['national_pension'], 0)
        self.assertEqual(result['net_pay'], 192740)

    def test_snapshot_issue_is_idempotent_per_worker_month(self):
        for _ in range(2):
            response = self.client.post('/api/admin/salary/snapshots', headers=self.admin_headers,
                                        json={'year': 2026, 'month': 3})
            self.assertEqual(response.status_code, 201)
            self.assertEqual(len(response.get_json()['data']), 2)
        self.assertEqual(db.session.query(SalarySnapshot).count(), 2)

        snapshot = db.session.query(SalarySnapshot).filter_by(worker_id=self.worker.id).one()
        self.assertEqual(snapshot.payload['salary']['total_gross_pay'], 225000)
        self.assertEqual(snapshot.payload['salary']['tax_deduction'], 14850)
        self.assertEqual(snapshot.payload['salary']['net_pay'], 210150)
        self.assertEqual(snapshot.payload['workDays'], 1)

        self.assertEqual(
            db.session.query(Notification).filter_by(user_id=self.worker.id, related_entity_type='salary_snapshot').count(),
            2,
        )

        response = self.client.get('/api/mobile/payslips', headers=self.headers(self.worker))
        self.assertEqual([s['id'] for s in response.get_json()['data']], [str(snapshot.id)])

        response = self.client.get(f'/api/mobile/payslips/{snapshot.id}', headers=self.headers(self.manager))
        self.assertEqual(response.status_code, 403)

    def test_export_csv(self):
        response = self.client.get('/api/admin/salary/statements/export?year=2026&month=3&format=csv',
                                   headers=self.admin_headers)
        self.assertEqual(response.status_code, 200)
        self.assertTrue(response.mimetype.startswith('text/csv'))
        rows = list(csv.reader(io.StringIO(response.data.decode('utf-8-sig'))))
        self.assertEqual(rows[0][0], '성명')
        by_name = {row[0]: row for row in rows[1:]}
        self.assertEqual(by_name['이작업'][1], '일용직')
        self.assertEqual(by_name['이작업'][-1], '210150')

    def test_export_xlsx(self):
        response = self.client.get(f'/api/admin/salary/statements/export?year=2026&month=3&site_id={self.site_a.id}',
                                   headers=self.admin_headers)
        self.assertEqual(response.status_code, 200)
        self.assertIn('salary_statement_A_', response.headers['Content-Disposition'])
        ws = load_workbook(io.BytesIO(response.data)).active
        self.assertTrue(ws['A1'].value.startswith('2026년 3월 급여명세'))
        self.assertEqual(ws['A4'].value, '성명')
        self.assertEqual(ws['A7'].value, '합계')

    def test_export_rejects_unknown_format(self):
        response = self.client.get('/api/admin/salary/statements/export?year=2026&month=3&format=pdf',
                                   headers=self.admin_headers)
        self.assertEqual(response.status_code, 400)

    def test_restricted_admin_cannot_change_tax_rates(self):
        rate = EmploymentTaxRate(employment_type='daily_worker', tax_name='소득세', rate=6.0)
        db.session.add(rate)
        db.session.commit()

        response = self.client.put(f'/api/admin/salary/tax-rates/{rate.id}',
                                   headers=self.headers(self.restricted_admin), json={'rate': 0})
        self.assertEqual(response.status_code, 403)

        response = self.client.put(f'/api/admin/salary/tax-rates/{rate.id}', headers=self.admin_headers,
                                   json={'rate': 5.5})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json()['data']['rate'], 5.5)


    def _worker_records(self):
        db.session.expire_all()
        return db.session.query(SalaryRecord).filter_by(worker_id=self.worker.id).all()

    def _save_site_b_line(self, labor_hours=0.5):
        response = self.save_report(self.system_admin, self.site_b, '2026-03-02', [
            {'worker_name': '이작업', 'labor_hours': labor_hours, 'worker_id': str(self.worker.id)},
        ])
        self.assertIn(response.status_code, (200, 201))

    def test_recalculation_after_site_approval_keeps_worker_day_paid_once(self):
        self._save_site_b_line()
        response = self.client.post('/api/admin/salary/calculate', headers=self.admin_headers,
                                    json=dict(MONTH, site_id=str(self.site_b.id)))
        self.assertEqual(response.get_json()['data']['count'], 1)
        record = self._worker_records()[0]
        self.assertEqual(str(record.site_id), str(self.site_b.id))

        response = self.client.post('/api/admin/salary/records/approve', headers=self.admin_headers,
                                    json={'ids': [str(record.id)]})
        self.assertEqual(response.status_code, 200)
        self._calculate()

        records = self._worker_records()
        self.assertEqual(sum(float(r.labor_hours) for r in records), 2.0)
        self.assertEqual(sum(float(r.total_pay) for r in records), 300000)

    def test_site_recalculation_after_full_run_adds_nothing(self):
        self._save_site_b_line()
        self._calculate()
        response = self.client.post('/api/admin/salary/calculate', headers=self.admin_headers,
                                    json=dict(MONTH, site_id=str(self.site_b.id)))
        self.assertEqual(response.get_json()['data']['count'], 0)

        records = self._worker_records()
        self.assertEqual(len(records), 1)
        self.assertEqual(float(records[0].labor_hours), 2.0)
        self.assertEqual(str(records[0].site_id), str(self.site_a.id))

    def _worker_payslip(self):
        db.session.expire_all()
        return db.session.query(SalarySnapshot).filter_by(worker_id=self.worker.id).one()

    def test_site_filtered_issue_keeps_whole_month_payslip(self):
        self._save_site_b_line(1.0)
        response = self.client.post('/api/admin/salary/snapshots', headers=self.admin_headers,
                                    json={'year': 2026, 'month': 3})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self._worker_payslip().payload['totalLaborHours'], 2.5)

        response = self.client.post('/api/admin/salary/snapshots', headers=self.admin_headers,
                                    json={'year': 2026, 'month': 3, 'site_id': str(self.site_a.id)})
        self.assertEqual(response.status_code, 201)
        self.assertEqual(self._worker_payslip().payload['totalLaborHours'], 2.5)

        response = self.client.post('/api/admin/salary/snapshots', headers=self.headers(self.restricted_admin),
                                    json={'year': 2026, 'month': 3})
        self.assertEqual(response.status_code, 201)
        payslip = self._worker_payslip()
        self.assertEqual(payslip.payload['totalLaborHours'], 2.5)
        self.assertEqual(payslip.payload['salary']['total_gross_pay'], 375000)

    def test_personal_record_is_stored_in_labor_units_and_survives_recalculation(self):
        self.client.post('/api/admin/salary/worker-settings', headers=self.admin_headers, json={
            'worker_id': str(self.worker.id),
            'employment_type': 'daily_worker',
            'daily_rate': 150000,
            'effective_date': '2026-01-01',
        })
        response = self.client.post('/api/admin/salary/personal/records', headers=self.admin_headers, json={
            'worker_id': str(self.worker.id),
            'site_id': str(self.site_a.id),
            'work_date': '2026-03-02',
            'labor_hours': 1.5,
        })
        self.assertEqual(response.status_code, 201)
        record = self._worker_records()[0]
        self.assertEqual(record.source, 'manual')
        self.assertEqual(float(record.regular_hours), 1.0)
        self.assertEqual(float(record.overtime_hours), 0.5)

        response = self._calculate()
        # Only the site manager is calculated; the worker's day is already covered
        self.assertEqual(response.get_json()['data']['count'], 1)
        self.assertEqual([r.id for r in self._worker_records()], [record.id])

        response = self.client.get('/api/admin/salary/stats?date_from=2026-03-01&date_to=2026-03-31',
                                   headers=self.admin_headers)
        self.assertEqual(response.get_json()['data']['overtime_percentage'], 20.0)


if __name__ == '__main__':
    unittest.main()
