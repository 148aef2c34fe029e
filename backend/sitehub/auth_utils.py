import logging
import uuid
from datetime import datetime, timedelta, timezone
from functools import wraps

import jwt
from flask import current_app, g, jsonify, request

from .errors import AdminErrors
from .models.users import ADMIN_ROLES
from .repositories.organization_repository import OrganizationRepository
from .repositories.profile_repository import ProfileRepository
from .services.access_guard import AuthContext

logger = logging.getLogger(__name__)

TOKEN_EXPIRED = '로그인이 만료되었습니다. 다시 로그인해주세요.'
TOKEN_INVALID = '유효하지 않은 토큰입니다. 다시 로그인해주세요.'


def encode_auth_token(user_id):
    """
    Generates the Auth Token
    :return: string
    """
    now = datetime.now(timezone.utc)
    payload = {
        'exp': now + timedelta(seconds=int(current_app.config['JWT_ACCESS_TOKEN_EXPIRES'])),
        'iat': now,
        'sub': str(user_id)
    }
    return jwt.encode(payload, current_app.config['JWT_SECRET_KEY'], algorithm='HS256')


def decode_auth_token(auth_token):
    """
    Decodes the auth token
    :param auth_token:
    :return: UUID of the profile
    :raises jwt.InvalidTokenError: expired or tampered tokens
    """
    payload = jwt.decode(auth_token, current_app.config['JWT_SECRET_KEY'], algorithms=['HS256'])
    return uuid.UUID(payload['sub'])


def _unauthorized(message):
    return jsonify({'message': message, 'success': False, 'error': 'Unauthorized'}), 401


def _forbidden(message):
    return jsonify({'message': message, 'success': False, 'error': 'Forbidden'}), 403


def token_required(f):
    @wraps(f)
    def decorated(*args, **kwargs):
        auth_header = request.headers.get('Authorization')
        if not auth_header:
            return _unauthorized(AdminErrors.UNAUTHORIZED)

        try:
            auth_token = auth_header.split(" ")[1]
        except IndexError:
            return _unauthorized(TOKEN_INVALID)

        try:
            user_id = decode_auth_token(auth_token)
        except jwt.ExpiredSignatureError:
            return _unauthorized(TOKEN_EXPIRED)
        except (jwt.InvalidTokenError, KeyError, ValueError):
            return _unauthorized(TOKEN_INVALID)

        current_user = ProfileRepository().get_by_id(user_id)
        if not current_user:
            return _unauthorized('사용자를 찾을 수 없습니다.')
        if not current_user.is_active:
            return _forbidden('비활성화된 계정입니다.')

        if current_user.organization_id:
            organization = OrganizationRepository().get_by_id(current_user.organization_id)
            if not organization:
                return _forbidden('소속 조직이 존재하지 않습니다.')
            if not organization.is_active:
                return _forbidden('소속 조직이 비활성화되었습니다.')

        # Store user and authorization context in Flask's g object
        g.current_user = current_user
        g.auth = AuthContext.from_profile(current_user)

        return f(*args, **kwargs)

    return decorated


def role_required(*roles):
    """Must be applied below ``token_required``."""
    def decorator(f):
        @wraps(f)
        def decorated(*args, **kwargs):
            if g.current_user.role not in roles:
                logger.info('Role %s rejected for %s', g.current_user.role, request.path)
                return _forbidden(AdminErrors.FORBIDDEN)
            return f(*args, **kwargs)
        return decorated
    return decorator


def admin_required(f):
    return role_required(*ADMIN_ROLES)(f)
