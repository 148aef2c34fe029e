"""
Pay arithmetic shared by the payroll services.

Labor is counted in 공수 (man-days): 1.0 공수 is an 8 hour day. All money
values are KRW rounded to whole won.
"""
import math
from collections import OrderedDict
from typing import Dict, List, Optional, Tuple

HOURS_PER_LABOR_DAY = 8
DEFAULT_DAILY_PAY = 150000
DEFAULT_OVERTIME_MULTIPLIER = 1.5

# Output summary estimate per 공수 when no worker setting applies
ROLE_DAILY_RATES = {'site_manager': 220000}
DEFAULT_ROLE_DAILY_RATE = 130000

DEDUCTION_KEYS = ('income_tax', 'resident_tax', 'national_pension', 'health_insurance', 'employment_insurance')

# Tax names as stored in employment_tax_rates
TAX_NAME_KEYS = {
    '소득세': 'income_tax',
    '주민세': 'resident_tax',
    '국민연금': 'national_pension',
    '건강보험': 'health_insurance',
    '고용보험': 'employment_insurance',
}

DEFAULT_TAX_RATES = {
    'regular_employee': {
        '소득세': 3.3,
        '주민세': 0.33,
        '국민연금': 4.5,
        '건강보험': 3.545,
        '고용보험': 0.9,
    },
    'freelancer': {
        '소득세': 3.3,
        '주민세': 0.33,
    },
    'daily_worker': {
        '소득세': 6.0,
        '주민세': 0.6,
    },
}


def won(value) -> int:
    """Round half up to whole won."""
    return int(math.floor(float(value or 0) + 0.5))


def _rule_applies(rule, site_id, role, match_role: bool = True) -> bool:
    if rule.site_id is not None and str(rule.site_id) != str(site_id):
        return False
    if match_role and rule.role and rule.role != role:
        return False
    return True


def find_rule(rules, rule_type: str, site_id, role: Optional[str] = None, match_role: bool = True):
    """First active rule of a type matching the site (and role); site-specific rules win over global ones."""
    candidates = [
        r for r in rules
        if r.rule_type == rule_type and getattr(r, 'is_active', True) and _rule_applies(r, site_id, role, match_role)
    ]
    candidates.sort(key=lambda r: 0 if r.site_id is not None else 1)
    return candidates[0] if candidates else None


def split_labor(labor_hours) -> Tuple[float, float]:
    """Regular and overtime 공수: up to 1.0 is regular, the rest overtime."""
    labor = float(labor_hours or 0)
    return min(labor, 1.0), max(labor - 1.0, 0.0)


def calculate_daily_pay(labor_hours: float, daily_rule=None, hourly_rule=None, overtime_rule=None) -> Dict:
    """
    Pay for one worker-day.

    Args:
        labor_hours: 공수 worked that day (1.0 = 8h)
        daily_rule: daily_rate rule; base_amount is pay per 공수
        hourly_rule: hourly_rate rule; base_amount is pay per hour
        overtime_rule: overtime_multiplier rule for hours beyond 8

    Returns:
        Dict of record columns (hours in 공수, money rounded)
    """
    labor = float(labor_hours or 0)
    actual_hours = labor * HOURS_PER_LABOR_DAY
    regular_hours = min(actual_hours, HOURS_PER_LABOR_DAY)
    overtime_hours = max(actual_hours - HOURS_PER_LABOR_DAY, 0)
    regular_labor, overtime_labor = split_labor(labor)

    overtime_pay = 0.0
    if daily_rule is not None:
        base_pay = labor * float(daily_rule.base_amount or 0)
    elif hourly_rule is not None:
        rate = float(hourly_rule.base_amount or 0)
        base_pay = regular_hours * rate
        if overtime_hours > 0:
            multiplier = float(overtime_rule.multiplier) if overtime_rule is not None and overtime_rule.multiplier \
                else DEFAULT_OVERTIME_MULTIPLIER
            overtime_pay = overtime_hours * rate * multiplier
    else:
        base_pay = labor * DEFAULT_DAILY_PAY

    return {
        'labor_hours': labor,
        'regular_hours': regular_labor,
        'overtime_hours': overtime_labor,
        'base_pay': won(base_pay),
        'overtime_pay': won(overtime_pay),
        'bonus_pay': 0,
        'deductions': 0,
        'total_pay': won(base_pay + overtime_pay),
        'notes': f'공수: {labor:g}',
    }


def aggregate_worker_days(entries) -> List[Dict]:
    """
    Merge lines into one entry per (worker, date).

    Args:
        entries: Iterable of dicts with worker_id, work_date, site_id, labor_hours

    Returns:
        List of dicts in first-seen order; labor is summed, the first site is kept
    """
    merged = OrderedDict()
    for entry in entries:
        key = (str(entry['worker_id']), entry['work_date'])
        if key in merged:
            merged[key]['labor_hours'] += float(entry['labor_hours'] or 0)
        else:
            merged[key] = dict(entry, labor_hours=float(entry['labor_hours'] or 0))
    return list(merged.values())


def resolve_tax_rates(employment_type: str, rates, custom_rates: Optional[Dict] = None) -> Dict[str, float]:
    """
    Percent rates by deduction key for an employment type.

    Args:
        employment_type: regular_employee, freelancer or daily_worker
        rates: EmploymentTaxRate rows (any type); defaults apply when none match
        custom_rates: Per-worker overrides keyed by deduction key or tax name

    Returns:
        Dict deduction key -> percent
    """
    matching = [r for r in rates or [] if r.employment_type == employment_type and getattr(r, 'is_active', True)]
    if matching:
        table = {TAX_NAME_KEYS.get(r.tax_name, r.tax_name): float(r.rate) for r in matching}
    else:
        table = {TAX_NAME_KEYS[name]: rate for name, rate in DEFAULT_TAX_RATES.get(employment_type, {}).items()}

    if custom_rates:
        for name, rate in custom_rates.items():
            if rate is None or rate == '':
                continue
            table[TAX_NAME_KEYS.get(name, name)] = float(rate)
    return {key: table.get(key, 0.0) for key in DEDUCTION_KEYS}


def calculate_personal_salary(daily_rate, labor_hours, tax_rates: Dict[str, float],
                              additional_deductions=0) -> Dict:
    """
    Gross, deductions and net for a worker's 공수 at their daily rate.

    Returns:
        Dict with gross_pay, one entry per deduction key, total_tax,
        additional_deductions and net_pay
    """
    gross = float(daily_rate or 0) * float(labor_hours or 0)
    result = {'gross_pay': won(gross)}
    total_tax = 0
    for key in DEDUCTION_KEYS:
        amount = won(gross * tax_rates.get(key, 0) / 100)
        result[key] = amount
        total_tax += amount
    additional = won(additional_deductions or 0)
    result['additional_deductions'] = additional
    result['total_tax'] = total_tax + additional
    result['net_pay'] = won(gross) - total_tax - additional
    result['tax_rates'] = dict(tax_rates)
    return result


def role_daily_rate(role: Optional[str]) -> int:
    return ROLE_DAILY_RATES.get(role, DEFAULT_ROLE_DAILY_RATE)


def monthly_statement(labor_by_date: Dict, daily_rate, employment_type: str, tax_rates: Dict[str, float],
                      period_start, period_end) -> Dict:
    """
    Salary block of a monthly payslip.

    Args:
        labor_by_date: work date -> 공수 for the month
        daily_rate: Pay per 공수
        employment_type: Worker's employment type
        tax_rates: Output of resolve_tax_rates
        period_start: First day of the month
        period_end: Last day of the month

    Returns:
        Dict with work days, 공수 and pay/deduction totals
    """
    total_labor = round(sum(float(v or 0) for v in labor_by_date.values()), 2)
    pay = calculate_personal_salary(daily_rate, total_labor, tax_rates)
    tax_deduction = pay['income_tax'] + pay['resident_tax']
    return {
        'employment_type': employment_type,
        'daily_rate': won(daily_rate),
        'work_days': len([d for d, v in labor_by_date.items() if v]),
        'total_labor_hours': total_labor,
        'base_pay': pay['gross_pay'],
        'total_gross_pay': pay['gross_pay'],
        'tax_deduction': tax_deduction,
        'national_pension': pay['national_pension'],
        'health_insurance': pay['health_insurance'],
        'employment_insurance': pay['employment_insurance'],
        'total_deductions': pay['total_tax'],
        'net_pay': pay['net_pay'],
        'period_start': period_start.isoformat(),
        'period_end': period_end.isoformat(),
    }
