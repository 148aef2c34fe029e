"""
Error taxonomy shared by services and route handlers.

Services raise ``AppError`` with a user-facing (Korean) message; handlers turn
it into the standard response envelope via ``api.utils.error_response``.
"""
from enum import Enum
from typing import Optional

from sqlalchemy.exc import IntegrityError


class ErrorType(str, Enum):
    VALIDATION = 'VALIDATION'
    AUTHENTICATION = 'AUTHENTICATION'
    AUTHORIZATION = 'AUTHORIZATION'
    NOT_FOUND = 'NOT_FOUND'
    CONFLICT = 'CONFLICT'
    SERVER_ERROR = 'SERVER_ERROR'


STATUS_BY_TYPE = {
    ErrorType.VALIDATION: 400,
    ErrorType.AUTHENTICATION: 401,
    ErrorType.AUTHORIZATION: 403,
    ErrorType.NOT_FOUND: 404,
    ErrorType.CONFLICT: 409,
    ErrorType.SERVER_ERROR: 500,
}

ERROR_LABELS = {
    400: 'Bad Request',
    401: 'Unauthorized',
    403: 'Forbidden',
    404: 'Not Found',
    409: 'Conflict',
    500: 'Internal Server Error',
}


class AdminErrors:
    UNAUTHORIZED = '인증이 필요합니다.'
    FORBIDDEN = '권한이 없습니다.'
    DATABASE_ERROR = '데이터베이스 오류가 발생했습니다.'
    DUPLICATE_ERROR = '이미 존재하는 데이터입니다.'
    NOT_FOUND = '요청한 데이터를 찾을 수 없습니다.'
    UNKNOWN_ERROR = '알 수 없는 오류가 발생했습니다.'
    VALIDATION_ERROR = '입력값이 올바르지 않습니다.'
    REQUIRED_FIELDS = '필수 입력 항목이 누락되었습니다.'
    REFERENCED_ERROR = '다른 데이터에서 참조 중이므로 삭제할 수 없습니다.'


class AccessMessages:
    NO_ORGANIZATION = '소속 조직 정보가 없습니다.'
    ORGANIZATION = '조직에 접근할 권한이 없습니다.'
    SITE = '현장에 접근할 권한이 없습니다.'
    SITE_NOT_FOUND = '현장 정보를 찾을 수 없습니다.'
    USER = '사용자에 접근할 권한이 없습니다.'
    USER_NOT_FOUND = '사용자 정보를 찾을 수 없습니다.'
    SALARY = '급여 기록에 접근할 권한이 없습니다.'
    REPORT = '작업일지에 접근할 권한이 없습니다.'
    DOCUMENT = '문서에 접근할 권한이 없습니다.'
    MATERIAL_REQUEST = '자재 요청에 접근할 권한이 없습니다.'


class AppError(Exception):
    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.VALIDATION,
        status_code: Optional[int] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_type = error_type
        self.status_code = status_code or STATUS_BY_TYPE[error_type]

    @property
    def label(self) -> str:
        return ERROR_LABELS.get(self.status_code, 'Error')

    @classmethod
    def validation(cls, message: str = AdminErrors.VALIDATION_ERROR):
        return cls(message, ErrorType.VALIDATION)

    @classmethod
    def forbidden(cls, message: str = AdminErrors.FORBIDDEN):
        return cls(message, ErrorType.AUTHORIZATION)

    @classmethod
    def not_found(cls, message: str = AdminErrors.NOT_FOUND):
        return cls(message, ErrorType.NOT_FOUND)

    @classmethod
    def conflict(cls, message: str = AdminErrors.DUPLICATE_ERROR):
        return cls(message, ErrorType.CONFLICT)


def from_integrity_error(exc: IntegrityError) -> AppError:
    """Map a database constraint violation to a user-facing error."""
    text = str(getattr(exc, 'orig', exc)).lower()
    if 'foreign key' in text:
        return AppError(AdminErrors.REFERENCED_ERROR, ErrorType.CONFLICT)
    if 'unique' in text or 'duplicate' in text:
        return AppError(AdminErrors.DUPLICATE_ERROR, ErrorType.CONFLICT)
    return AppError(AdminErrors.DATABASE_ERROR, ErrorType.SERVER_ERROR)
