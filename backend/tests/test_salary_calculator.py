import unittest
from datetime import date
from types import SimpleNamespace

from backend.sitehub.services.payroll.salary_calculator import (
    aggregate_worker_days,
    calculate_daily_pay,
    calculate_personal_salary,
    find_rule,
    monthly_statement,
    resolve_tax_rates,
    role_daily_rate,
    won,
)


def rule(rule_type, base_amount=0, site_id=None, role=None, multiplier=None, is_active=True):
    return SimpleNamespace(
        rule_type=rule_type,
        base_amount=base_amount,
        site_id=site_id,
        role=role,
        multiplier=multiplier,
        is_active=is_active,
    )


class TestWon(unittest.TestCase):
    def test_rounds_half_up(self):
        self.assertEqual(won(4949.5), 4950)
        self.assertEqual(won(4949.49), 4949)
        self.assertEqual(won(None), 0)


class TestFindRule(unittest.TestCase):
    def test_site_rule_beats_global_rule(self):
        global_rule = rule('daily_rate', 100000)
        site_rule = rule('daily_rate', 180000, site_id='site-1')
        self.assertIs(find_rule([global_rule, site_rule], 'daily_rate', 'site-1'), site_rule)
        self.assertIs(find_rule([global_rule, site_rule], 'daily_rate', 'site-2'), global_rule)

    def test_inactive_and_other_role_rules_are_skipped(self):
        inactive = rule('daily_rate', 100000, is_active=False)
        manager_only = rule('daily_rate', 200000, role='site_manager')
        self.assertIsNone(find_rule([inactive, manager_only], 'daily_rate', 'site-1', role='worker'))
        self.assertIs(find_rule([inactive, manager_only], 'daily_rate', 'site-1', role='worker', match_role=False),
                      manager_only)


class TestCalculateDailyPay(unittest.TestCase):
    def test_without_rules_uses_default_daily_pay(self):
        result = calculate_daily_pay(1.5)
        self.assertEqual(result['base_pay'], 225000)
        self.assertEqual(result['overtime_pay'], 0)
        self.assertEqual(result['total_pay'], 225000)
        self.assertEqual(result['notes'], '공수: 1.5')

    def test_daily_rule_multiplies_labor(self):
        result = calculate_daily_pay(0.5, daily_rule=rule('daily_rate', 200000))
        self.assertEqual(result['total_pay'], 100000)
        self.assertEqual(result['overtime_hours'], 0)

    def test_hourly_rule_pays_overtime_with_default_multiplier(self):
        # 1.25 공수 = 10h: 8h regular, 2h overtime
        result = calculate_daily_pay(1.25, hourly_rule=rule('hourly_rate', 10000))
        self.assertEqual(result['base_pay'], 80000)
        self.assertEqual(result['overtime_pay'], 30000)
        self.assertEqual(result['total_pay'], 110000)
        self.assertEqual(result['overtime_hours'], 0.25)

    def test_hourly_rule_uses_overtime_rule_multiplier(self):
        result = calculate_daily_pay(
            1.5,
            hourly_rule=rule('hourly_rate', 10000),
            overtime_rule=rule('overtime_multiplier', multiplier=2.0),
        )
        self.assertEqual(result['overtime_pay'], 80000)


class TestAggregateWorkerDays(unittest.TestCase):
    def test_sums_labor_per_worker_and_date_keeping_first_site(self):
        day = date(2026, 3, 2)
        entries = [
            {'worker_id': 'w1', 'work_date': day, 'site_id': 's1', 'labor_hours': 0.5},
            {'worker_id': 'w1', 'work_date': day, 'site_id': 's2', 'labor_hours': 0.75},
            {'worker_id': 'w2', 'work_date': day, 'site_id': 's2', 'labor_hours': 1},
        ]
        merged = aggregate_worker_days(entries)
        self.assertEqual(len(merged), 2)
        self.assertEqual(merged[0]['labor_hours'], 1.25)
        self.assertEqual(merged[0]['site_id'], 's1')


class TestTaxRates(unittest.TestCase):
    def test_defaults_when_no_rows(self):
        rates = resolve_tax_rates('daily_worker', [])
        self.assertEqual(rates['income_tax'], 6.0)
        self.assertEqual(rates['resident_tax'], 0.6)
        self.assertEqual(rates['national_pension'], 0.0)

    def test_rows_and_custom_overrides(self):
        rows = [
            SimpleNamespace(employment_type='freelancer', tax_name='소득세', rate=3.0, is_active=True),
            SimpleNamespace(employment_type='daily_worker', tax_name='소득세', rate=9.0, is_active=True),
        ]
        rates = resolve_tax_rates('freelancer', rows, {'주민세': 0.5})
        self.assertEqual(rates['income_tax'], 3.0)
        self.assertEqual(rates['resident_tax'], 0.5)


class TestPersonalSalary(unittest.TestCase):
    def test_net_pay_subtracts_taxes_and_additional_deductions(self):
        rates = resolve_tax_rates('freelancer', [])
        result = calculate_personal_salary(150000, 1.0, rates, additional_deductions=10000)
        self.assertEqual(result['gross_pay'], 150000)
        self.assertEqual(result['income_tax'], 4950)
        self.assertEqual(result['resident_tax'], 495)
        self.assertEqual(result['total_tax'], 4950 + 495 + 10000)
        self.assertEqual(result['net_pay'], 150000 - 4950 - 495 - 10000)

    def test_monthly_statement_counts_work_days(self):
        rates = resolve_tax_rates('daily_worker', [])
        statement = monthly_statement(
            {'2026-03-02': 1.0, '2026-03-03': 0.5, '2026-03-04': 0},
            150000, 'daily_worker', rates, date(2026, 3, 1), date(2026, 3, 31),
        )
        self.assertEqual(statement['work_days'], 2)
        self.assertEqual(statement['total_labor_hours'], 1.5)
        self.assertEqual(statement['total_gross_pay'], 225000)
        self.assertEqual(statement['tax_deduction'], 13500 + 1350)
        self.assertEqual(statement['net_pay'], 225000 - 13500 - 1350)

    def test_role_daily_rate(self):
        self.assertEqual(role_daily_rate('site_manager'), 220000)
        self.assertEqual(role_daily_rate('worker'), 130000)


if __name__ == '__main__':
    unittest.main()
