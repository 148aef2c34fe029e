import logging
import traceback
from decimal import Decimal
from typing import Any, Dict, List, Optional

from flask import jsonify, request
from sqlalchemy.orm import class_mapper

from ..errors import AdminErrors, AppError
from ..utils import parse_uuid_list

logger = logging.getLogger(__name__)

HIDDEN_COLUMNS = {'password_hash', 'file_bytes'}


def _serialize(value):
    if value is None:
        return None
    if hasattr(value, 'isoformat'):  # date / datetime
        return value.isoformat()
    if value.__class__.__name__ == 'UUID':
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return None
    return value


def model_to_dict(model: Any, exclude: Optional[set] = None) -> Dict[str, Any]:
    """
    Convert a SQLAlchemy model instance to a dictionary.
    """
    if not model:
        return None

    skip = HIDDEN_COLUMNS | (exclude or set())
    data = {}
    for prop in class_mapper(model.__class__).column_attrs:
        if prop.key in skip:
            continue
        data[prop.key] = _serialize(getattr(model, prop.key))
    return data


def models_to_list(models: List[Any], exclude: Optional[set] = None) -> List[Dict[str, Any]]:
    """
    Convert a list of SQLAlchemy model instances to a list of dictionaries.
    """
    return [model_to_dict(m, exclude) for m in models]


def api_response(
    data: Any = None,
    message: str = "Success",
    status_code: int = 200,
    error: Optional[str] = None,
    meta: Optional[Dict[str, Any]] = None
):
    """
    Standard API response format.
    """
    response = {
        "success": status_code >= 200 and status_code < 300,
        "message": message,
        "data": data
    }

    if error:
        response["error"] = error

    if meta:
        response["meta"] = meta

    return jsonify(response), status_code


def error_response(error: AppError):
    return api_response(status_code=error.status_code, message=error.message, error=error.label)


def server_error(log_message: str, exc: Exception):
    """Log an unexpected failure and answer 500 with the generic message."""
    logger.exception(log_message)
    traceback.print_exc()
    return api_response(status_code=500, message=AdminErrors.UNKNOWN_ERROR, error=str(exc))


def paginated_response(result: Dict[str, Any], serializer, message: str = "Success"):
    return api_response(
        data=[serializer(item) for item in result['items']],
        message=message,
        meta={
            'total': result['total'],
            'page': result['page'],
            'per_page': result['per_page'],
            'pages': result['pages'],
        },
    )


def pagination_args():
    return {
        'page': request.args.get('page', 1, type=int),
        'per_page': request.args.get('per_page', 20, type=int),
    }


def json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise AppError.validation('요청 데이터가 없습니다.')
    return data


def id_list(data: Dict[str, Any], key: str = 'ids') -> list:
    values = data.get(key)
    if not isinstance(values, list) or not values:
        raise AppError.validation(AdminErrors.REQUIRED_FIELDS)
    try:
        return parse_uuid_list(values)
    except (ValueError, AttributeError, TypeError):
        raise AppError.validation('올바르지 않은 ID 형식입니다.')


def profile_to_dict(profile, include_organization: bool = False) -> Dict[str, Any]:
    data = model_to_dict(profile)
    if data is None:
        return None
    if include_organization:
        organization = profile.organization
        data['organization'] = {
            'id': str(organization.id),
            'name': organization.name,
            'type': organization.type,
            'is_active': organization.is_active,
        } if organization else None
    return data


def profile_summary(profile) -> Optional[Dict[str, Any]]:
    if not profile:
        return None
    return {
        'id': str(profile.id),
        'full_name': profile.full_name,
        'email': profile.email,
        'role': profile.role,
        'organization_id': str(profile.organization_id) if profile.organization_id else None,
    }
