import logging
from datetime import timezone

from flask import Blueprint, g, request

from ..auth_utils import token_required
from ..errors import AppError
from ..utils import as_utc, parse_datetime, to_uuid, utc_now
from .common import notification_repo
from .utils import (
    api_response,
    error_response,
    id_list,
    json_body,
    model_to_dict,
    models_to_list,
    paginated_response,
    pagination_args,
    server_error,
)

logger = logging.getLogger(__name__)

notifications_bp = Blueprint('notifications', __name__, url_prefix='/api/notifications')

CHANGE_FEED_LIMIT = 100


@notifications_bp.route('', methods=['GET'])
@token_required
def list_notifications():
    try:
        unread_only = request.args.get('unread', 'false').lower() == 'true'
        result = notification_repo.list_for_user(g.auth.user_id, unread_only=unread_only, **pagination_args())
        return paginated_response(result, model_to_dict)
    except Exception as e:
        return server_error('Failed to list notifications', e)


@notifications_bp.route('/unread-count', methods=['GET'])
@token_required
def unread_count():
    try:
        return api_response(data={'count': notification_repo.count_unread(g.auth.user_id)})
    except Exception as e:
        return server_error('Failed to count unread notifications', e)


@notifications_bp.route('/read', methods=['POST'])
@token_required
def mark_read():
    try:
        count = notification_repo.mark_read(g.auth.user_id, id_list(json_body()))
        return api_response(data={'updated': count})
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to mark notifications read', e)


@notifications_bp.route('/read-all', methods=['POST'])
@token_required
def mark_all_read():
    try:
        count = notification_repo.mark_read(g.auth.user_id)
        return api_response(data={'updated': count}, message='모든 알림을 읽음 처리했습니다.')
    except Exception as e:
        return server_error('Failed to mark all notifications read', e)


@notifications_bp.route('/changes', methods=['GET'])
@token_required
def list_changes():
    """
    Polling change feed. Clients pass back ``cursor`` as ``since`` and
    ``cursor_id`` as ``since_id`` on the next call.
    """
    try:
        since = parse_datetime(request.args.get('since'), 'since')
        since_id = to_uuid(request.args.get('since_id'))
    except ValueError as e:
        return api_response(status_code=400, message=str(e), error="Bad Request")

    try:
        if since is not None:
            since = since.astimezone(timezone.utc)
        items = notification_repo.get_since(g.auth.user_id, since, since_id, limit=CHANGE_FEED_LIMIT)
        if items:
            cursor = as_utc(items[-1].created_at)
            cursor_id = str(items[-1].id)
        else:
            cursor = since or utc_now()
            cursor_id = str(since_id) if since and since_id else None
        return api_response(data={
            'items': models_to_list(items),
            'cursor': cursor.isoformat().replace('+00:00', 'Z'),
            'cursor_id': cursor_id,
            'has_more': len(items) >= CHANGE_FEED_LIMIT,
        })
    except Exception as e:
        return server_error('Failed to load notification changes', e)
