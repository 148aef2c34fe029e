import logging

from flask import Blueprint, g, request
from werkzeug.security import check_password_hash

from ..auth_utils import encode_auth_token, token_required
from ..repositories.organization_repository import OrganizationRepository
from ..repositories.profile_repository import ProfileRepository
from ..services.user_service import hash_password
from ..utils import utc_now
from .utils import api_response, profile_to_dict, server_error

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__, url_prefix='/api/auth')
profile_repo = ProfileRepository()
organization_repo = OrganizationRepository()

INVALID_CREDENTIALS = '이메일 또는 비밀번호가 올바르지 않습니다.'
MIN_PASSWORD_LENGTH = 8


def get_user_with_organization(user):
    """
    Build user data dict including organization and access scope.
    """
    user_data = profile_to_dict(user, include_organization=True)
    auth = getattr(g, 'auth', None)
    if auth is not None and str(auth.user_id) == str(user.id):
        user_data['is_restricted'] = auth.is_restricted
        user_data['restricted_org_id'] = str(auth.restricted_org_id) if auth.restricted_org_id else None
    return user_data


@auth_bp.route('/login', methods=['POST'])
def login():
    """
    User Login
    """
    data = request.get_json(silent=True)
    if not data or not data.get('email') or not data.get('password'):
        return api_response(status_code=400, message="이메일과 비밀번호를 입력해주세요.", error="Bad Request")

    try:
        user = profile_repo.get_by_email(data.get('email'))
        if not user or not user.password_hash or not check_password_hash(user.password_hash, data.get('password')):
            return api_response(status_code=401, message=INVALID_CREDENTIALS, error="Unauthorized")

        if not user.is_active:
            return api_response(status_code=403, message="비활성화된 계정입니다.", error="Forbidden")

        if user.organization_id:
            organization = organization_repo.get_by_id(user.organization_id)
            if not organization or not organization.is_active:
                return api_response(status_code=403, message="소속 조직이 비활성화되었습니다.", error="Forbidden")

        auth_token = encode_auth_token(user.id)
        profile_repo.update(user.id, last_login_at=utc_now())
        logger.info('User %s logged in', user.id)
        return api_response(data={
            'token': auth_token,
            'user': profile_to_dict(user, include_organization=True)
        }, message="로그인되었습니다.")
    except Exception as e:
        return server_error('Login failed', e)


@auth_bp.route('/me', methods=['GET'])
@token_required
def get_me():
    """
    Get current user details with organization context
    """
    return api_response(data=get_user_with_organization(g.current_user))


@auth_bp.route('/change-password', methods=['POST'])
@token_required
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get('current_password') or ''
    new_password = data.get('new_password') or ''
    if not current_password or not new_password:
        return api_response(status_code=400, message="필수 입력 항목이 누락되었습니다.", error="Bad Request")
    if len(new_password) < MIN_PASSWORD_LENGTH:
        return api_response(status_code=400, message="비밀번호는 8자 이상이어야 합니다.", error="Bad Request")

    try:
        user = g.current_user
        if not user.password_hash or not check_password_hash(user.password_hash, current_password):
            return api_response(status_code=400, message="현재 비밀번호가 올바르지 않습니다.", error="Bad Request")
        profile_repo.update(user.id, password_hash=hash_password(new_password))
        return api_response(message="비밀번호가 변경되었습니다.")
    except Exception as e:
        return server_error('Failed to change password', e)
