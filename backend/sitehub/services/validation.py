"""
Field validators shared by the admin and mobile handlers.

Each validator returns a result dict with ``is_valid`` plus either ``error``
or extra derived fields (formatted value, carrier, overtime, ...).
``require_valid`` turns a failed result into an ``AppError``.
"""
import re
from decimal import Decimal
from typing import Any, Dict, Iterable, Optional

from ..errors import AppError

MOBILE_PATTERN = re.compile(r'^01[016789]\d{7,8}$')
EMAIL_PATTERN = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')

CARRIERS = {
    '010': 'SKT/KT/LGU+',
    '011': 'SKT',
    '016': 'KT',
    '017': 'SKT',
    '018': 'KT',
    '019': 'LGU+',
}

BRN_WEIGHTS = [1, 3, 7, 1, 3, 7, 1, 3, 5]

MAX_DOCUMENT_BYTES = 100 * 1024 * 1024
ALLOWED_DOCUMENT_TYPES = (
    'application/pdf',
    'image/jpeg',
    'image/png',
    'image/gif',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'text/plain',
    'application/zip',
)

LABOR_DESCRIPTIONS = {
    Decimal('0.25'): '2시간 근무',
    Decimal('0.5'): '반일 근무 (4시간)',
    Decimal('0.75'): '6시간 근무',
    Decimal('1.0'): '정규 근무 (8시간)',
    Decimal('1.25'): '정규 + 연장 2시간 (10시간)',
    Decimal('1.5'): '연장 근무 포함 (12시간)',
    Decimal('1.75'): '정규 + 연장 6시간 (14시간)',
    Decimal('2.0'): '16시간 근무',
}

# role -> resource -> allowed actions; system_admin is unrestricted
PERMISSIONS = {
    'worker': {
        'daily_report': {'create', 'read', 'update'},
        'document': {'read', 'upload'},
        'material_request': {'create', 'read'},
    },
    'site_manager': {
        'daily_report': {'create', 'read', 'update', 'approve'},
        'document': {'create', 'read', 'update', 'delete'},
        'worker': {'read', 'assign'},
        'site': {'read', 'update'},
        'material_request': {'create', 'read'},
    },
    'customer_manager': {
        'daily_report': {'read'},
        'document': {'read'},
        'site': {'read'},
    },
    'partner': {
        'daily_report': {'read'},
        'document': {'read'},
        'site': {'read'},
    },
    'admin': {
        'daily_report': {'create', 'read', 'update', 'delete', 'approve'},
        'document': {'create', 'read', 'update', 'delete'},
        'worker': {'create', 'read', 'update', 'delete'},
        'site': {'create', 'read', 'update', 'delete'},
        'user': {'create', 'read', 'update', 'delete'},
        'salary': {'create', 'read', 'update', 'approve'},
        'material_request': {'create', 'read', 'approve'},
    },
}


def require_valid(result: Dict[str, Any], message: Optional[str] = None) -> Dict[str, Any]:
    if not result.get('is_valid'):
        raise AppError.validation(message or result.get('error'))
    return result


def validate_email(email: str) -> Dict[str, Any]:
    if not email or not EMAIL_PATTERN.match(email.strip()):
        return {'is_valid': False, 'error': '올바른 이메일 형식이 아닙니다.'}
    return {'is_valid': True, 'normalized': email.strip().lower()}


def validate_korean_phone_number(phone_number: str) -> Dict[str, Any]:
    cleaned = re.sub(r'\D', '', phone_number or '')

    if not MOBILE_PATTERN.match(cleaned):
        return {'is_valid': False, 'error': '올바른 휴대폰 번호 형식이 아닙니다.'}
    if '0000' in cleaned:
        return {'is_valid': False, 'error': '사용할 수 없는 휴대폰 번호입니다.'}

    if len(cleaned) == 10:
        formatted = f'{cleaned[:3]}-{cleaned[3:6]}-{cleaned[6:]}'
    else:
        formatted = f'{cleaned[:3]}-{cleaned[3:7]}-{cleaned[7:]}'

    return {
        'is_valid': True,
        'formatted': formatted,
        'carrier': CARRIERS.get(cleaned[:3], 'Unknown'),
    }


def validate_business_registration_number(number: str, check_checksum: bool = False) -> Dict[str, Any]:
    """
    Validate a 10-digit Korean business registration number (사업자등록번호).

    The checksum uses the National Tax Service weights: the weighted sum of the
    first nine digits plus floor(d9 * 5 / 10) must yield the tenth digit.
    """
    cleaned = (number or '').replace('-', '').strip()
    if not re.fullmatch(r'\d{10}', cleaned):
        return {'is_valid': False, 'error': '사업자등록번호는 10자리 숫자여야 합니다.'}

    formatted = f'{cleaned[:3]}-{cleaned[3:5]}-{cleaned[5:]}'
    if not check_checksum:
        return {'is_valid': True, 'formatted': formatted, 'digits': cleaned}

    digits = [int(ch) for ch in cleaned]
    total = sum(d * w for d, w in zip(digits[:9], BRN_WEIGHTS))
    total += (digits[8] * 5) // 10
    check_digit = (10 - total % 10) % 10
    checksum_valid = check_digit == digits[9]

    result = {
        'is_valid': checksum_valid,
        'formatted': formatted,
        'digits': cleaned,
        'checksum_valid': checksum_valid,
    }
    if not checksum_valid:
        result['error'] = '사업자등록번호 검증에 실패했습니다.'
    return result


def validate_labor_hours(labor_hours) -> Dict[str, Any]:
    """
    Validate a 공수 value: positive, in 0.25 steps, at most 2.0 per day.
    """
    try:
        value = Decimal(str(labor_hours))
    except (ArithmeticError, ValueError, TypeError):
        return {'is_valid': False, 'error': '공수는 숫자여야 합니다.'}

    if not value.is_finite() or value <= 0:
        return {'is_valid': False, 'error': '공수는 0보다 커야 합니다.'}
    if value % Decimal('0.25') != 0:
        return {'is_valid': False, 'error': '공수는 0.25 단위로 입력해야 합니다.'}
    if value > Decimal('2.0'):
        return {'is_valid': False, 'error': '공수는 하루 2.0(16시간)을 초과할 수 없습니다.'}

    hours = float(value * 8)
    overtime_hours = float((value - 1) * 8) if value > 1 else 0.0
    return {
        'is_valid': True,
        'labor_hours': float(value),
        'hours': hours,
        'has_overtime': value > 1,
        'overtime_hours': overtime_hours,
        'description': LABOR_DESCRIPTIONS.get(value, f'{hours:g}시간 근무'),
    }


def validate_document_metadata(title: str, mime_type: str, file_size: int,
                               max_bytes: int = MAX_DOCUMENT_BYTES) -> Dict[str, Any]:
    if not title or not title.strip():
        return {'is_valid': False, 'error': '문서 제목은 필수입니다.'}
    limit = min(max_bytes, MAX_DOCUMENT_BYTES)
    if file_size <= 0:
        return {'is_valid': False, 'error': '빈 파일은 업로드할 수 없습니다.'}
    if file_size > limit:
        return {
            'is_valid': False,
            'error': f'파일 크기는 {limit // (1024 * 1024)}MB를 초과할 수 없습니다.',
            'max_size_mb': limit // (1024 * 1024),
        }
    if mime_type not in ALLOWED_DOCUMENT_TYPES:
        return {'is_valid': False, 'error': '허용되지 않는 파일 형식입니다.', 'allowed_types': list(ALLOWED_DOCUMENT_TYPES)}
    return {
        'is_valid': True,
        'has_korean_text': bool(re.search(r'[ㄱ-힝]', title)),
        'file_size_mb': round(file_size / (1024 * 1024), 2),
    }


def has_permission(role: str, resource: str, action: str,
                   assigned_site_ids: Optional[Iterable] = None, site_id=None) -> bool:
    """
    Check the static role permission matrix.

    Site managers additionally need an assignment on ``site_id`` when one is given.
    """
    if role == 'system_admin':
        return True
    role_permissions = PERMISSIONS.get(role)
    if not role_permissions:
        return False
    if action not in role_permissions.get(resource, set()):
        return False
    if role == 'site_manager' and site_id is not None:
        return str(site_id) in {str(s) for s in (assigned_site_ids or [])}
    return True
