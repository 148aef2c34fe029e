from flask import g, request, send_file

from ..auth_utils import admin_required, token_required
from ..errors import AppError
from .common import guard
from .salary import export_service, salary_bp, snapshot_service
from .utils import api_response, error_response, json_body, model_to_dict, models_to_list, server_error


@salary_bp.route('/snapshots', methods=['POST'])
@token_required
@admin_required
def issue_snapshots():
    try:
        data = json_body()
        if not data.get('year') or not data.get('month'):
            raise AppError.validation("year와 month는 필수입니다.")
        snapshots = snapshot_service.issue(
            g.auth,
            data['year'],
            data['month'],
            site_id=data.get('site_id'),
            worker_ids=data.get('worker_ids'),
        )
        return api_response(
            data=models_to_list(snapshots),
            message=f'{len(snapshots)}건의 급여명세서가 발행되었습니다.',
            status_code=201,
        )
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to issue salary snapshots', e)


@salary_bp.route('/snapshots', methods=['GET'])
@token_required
@admin_required
def list_snapshots():
    try:
        snapshots = snapshot_service.list_snapshots(
            g.auth,
            year=request.args.get('year', type=int),
            month=request.args.get('month', type=int),
            worker_id=request.args.get('worker_id'),
        )
        return api_response(data=models_to_list(snapshots))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to list salary snapshots', e)


@salary_bp.route('/snapshots/<uuid:snapshot_id>', methods=['GET'])
@token_required
@admin_required
def get_snapshot(snapshot_id):
    try:
        return api_response(data=model_to_dict(snapshot_service.get_snapshot(g.auth, snapshot_id)))
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error(f'Failed to get salary snapshot {snapshot_id}', e)


@salary_bp.route('/statements/export', methods=['GET'])
@token_required
@admin_required
def export_statements():
    year = request.args.get('year')
    month = request.args.get('month')
    if not year or not month:
        return api_response(status_code=400, message="year와 month는 필수입니다.", error="Bad Request")

    try:
        site_name = None
        site_id = request.args.get('site_id')
        if site_id:
            site_name = guard.ensure_site_accessible(g.auth, site_id).name
        output, download_name, mimetype = export_service.export(
            g.auth, year, month,
            output_type=request.args.get('format', 'xlsx'),
            site_id=site_id,
            site_name=site_name,
        )
        return send_file(output, mimetype=mimetype, as_attachment=True, download_name=download_name)
    except AppError as e:
        return error_response(e)
    except Exception as e:
        return server_error('Failed to export salary statements', e)
