import logging
from io import BytesIO

from flask import Blueprint, current_app, g, request, send_file

from ..auth_utils import token_required
from ..errors import AppError
from ..repositories.document_repository import DocumentRepository
from ..services.document_service import DocumentService
from .common import assignment_repo, audit_repo, guard, notifier
from .utils import (
    api_response,
    error_response,
    json_body,
    model_to_dict,
    models_to_list,
    paginated_response,
    pagination_args,
    profile_summary,
    server_error,
)

logger = logging.getLogger(__name__)

documents_bp = Blueprint('documents', __name__, url_prefix='/api/documents')
document_repo = DocumentRepository()


def get_service() -> DocumentService:
    max_bytes = int(current_app.config.get('MAX_UPLOAD_MB', 100)) * 1024 * 1024
    return DocumentService(document_repo, assignment_repo, guard, notifier, audit_repo, max_bytes=max_bytes)


def document_to_dict(document):
    data = model_to_dict(document)
    data['owner'] = profile_summary(document.owner)
    site = document.site
    data['site'] = {'id': str(site.id), 'name': site.name} if site else None
    return data


@documents_bp.route('', methods=['POST'])
@token_required
def upload_document():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return api_response(status_code=400, message="업로드할 파일이 없습니다.", error="Bad Request")

    try:
        file_bytes = upload.read()
        mime_type = upload.mimetype or 'application/octet-stream'
        document = get_service().upload(g.auth, file_bytes, upload.filename, mime_type, request.form.to_dict())
        return api_response(data=document_to_dict(document), message='문서가 업로드되었습니다.', status_code=201)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to upload document', e)


@documents_bp.route('', methods=['GET'])
@token_required
def list_documents():
    try:
        result = get_service().list_documents(
            g.auth,
            scope=request.args.get('type', 'all'),
            search=request.args.get('search'),
            site_id=request.args.get('site_id'),
            document_type=request.args.get('document_type'),
            **pagination_args()
        )
        return paginated_response(result, document_to_dict)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list documents', e)


@documents_bp.route('/shared-with-me', methods=['GET'])
@token_required
def shared_with_me():
    try:
        items = []
        for document, permission in get_service().shared_with_me(g.auth):
            data = document_to_dict(document)
            data['permission'] = model_to_dict(permission)
            items.append(data)
        return api_response(data=items)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list shared documents', e)


@documents_bp.route('/<uuid:document_id>', methods=['GET'])
@token_required
def get_document(document_id):
    try:
        document = get_service().get_document(g.auth, document_id)
        data = document_to_dict(document)
        if str(document.owner_id) == str(g.auth.user_id):
            data['permissions'] = models_to_list(document.permissions)
        return api_response(data=data)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to get document {document_id}', e)


@documents_bp.route('/<uuid:document_id>/download', methods=['GET'])
@token_required
def download_document(document_id):
    try:
        document, stored = get_service().get_file(g.auth, document_id)
        return send_file(
            BytesIO(bytes(stored.file_bytes)),
            mimetype=stored.content_type,
            as_attachment=True,
            download_name=document.file_name
        )
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to download document {document_id}', e)


@documents_bp.route('/<uuid:document_id>', methods=['PUT'])
@token_required
def update_document(document_id):
    try:
        document = get_service().update_document(g.auth, document_id, json_body())
        return api_response(data=document_to_dict(document), message='문서 정보가 수정되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to update document {document_id}', e)


@documents_bp.route('/<uuid:document_id>', methods=['DELETE'])
@token_required
def delete_document(document_id):
    try:
        get_service().delete_document(g.auth, document_id)
        return api_response(message='문서가 삭제되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to delete document {document_id}', e)


@documents_bp.route('/<uuid:document_id>/share', methods=['POST'])
@token_required
def share_document(document_id):
    try:
        data = json_body()
        permissions = get_service().share_document(
            g.auth,
            document_id,
            data.get('user_ids'),
            permission_type=data.get('permission_type', 'view'),
            expires_at=data.get('expires_at'),
        )
        return api_response(data=models_to_list(permissions), message='문서가 공유되었습니다.')
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to share document {document_id}', e)
