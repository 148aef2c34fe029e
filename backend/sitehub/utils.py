import calendar
import re
import secrets
import string
import uuid
from datetime import date, datetime, timezone


def utc_now():
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes coming back from the database as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_phone(phone: str) -> str:
    if not phone:
        return ''
    digits = re.sub(r'\D', '', phone)
    if digits.startswith('82') and len(digits) >= 11:
        digits = '0' + digits[2:]
    return digits


def parse_date(value, field_name: str = 'date') -> date:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise ValueError(f'Invalid {field_name} format, expected YYYY-MM-DD')


def parse_datetime(value, field_name: str = 'datetime') -> datetime:
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    raw = str(value).strip().replace('Z', '+00:00')
    try:
        return as_utc(datetime.fromisoformat(raw))
    except ValueError:
        raise ValueError(f'Invalid {field_name} format, expected ISO 8601')


def month_bounds(year: int, month: int):
    if month < 1 or month > 12:
        raise ValueError('month must be between 1 and 12')
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, 1), date(year, month, last_day)


def generate_temp_password(length: int = 12) -> str:
    alphabet = string.ascii_letters + string.digits
    core = ''.join(secrets.choice(alphabet) for _ in range(length - 2))
    return core + secrets.choice(string.digits) + secrets.choice('!@#$%')


def parse_uuid_list(values) -> list:
    result = []
    for value in values or []:
        result.append(to_uuid(value))
    return result


def to_uuid(value):
    if value is None or value == '':
        return None
    if isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))
