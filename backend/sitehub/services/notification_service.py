import logging
from typing import List

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class NotificationService:
    """Creates the in-app notifications triggered by workflow transitions.

    Delivery is best effort: the triggering change is already committed, so a
    failed insert is logged and the request still succeeds.
    """

    def __init__(self, notification_repo, assignment_repo):
        self.notification_repo = notification_repo
        self.assignment_repo = assignment_repo

    def _send(self, user_ids, **fields) -> List:
        recipients = list(dict.fromkeys(uid for uid in user_ids if uid))
        if not recipients:
            return []
        try:
            return self.notification_repo.create_many_for_users(recipients, **fields)
        except SQLAlchemyError:
            logger.exception('Failed to create %s notifications', fields.get('related_entity_type'))
            return []

    def report_submitted(self, report, site_name: str, author_name: str):
        managers = self.assignment_repo.get_user_ids_for_site(report.site_id, roles=['site_manager', 'supervisor'])
        managers = [uid for uid in managers if str(uid) != str(report.created_by)]
        return self._send(
            managers,
            type='info',
            title='작업일지 제출',
            message=f'{author_name}님이 {site_name} {report.work_date.isoformat()} 작업일지를 제출했습니다.',
            related_entity_type='daily_report',
            related_entity_id=report.id,
            action_url=f'/dashboard/daily-reports/{report.id}',
        )

    def report_processed(self, report, approved: bool, comments: str = None):
        if approved:
            title, kind = '작업일지 승인', 'success'
            message = f'{report.work_date.isoformat()} 작업일지가 승인되었습니다.'
        else:
            title, kind = '작업일지 반려', 'warning'
            message = f'{report.work_date.isoformat()} 작업일지가 반려되었습니다.'
            if comments:
                message = f'{message} 사유: {comments}'
        return self._send(
            [report.created_by],
            type=kind,
            title=title,
            message=message,
            related_entity_type='daily_report',
            related_entity_id=report.id,
            action_url=f'/dashboard/daily-reports/{report.id}',
        )

    def material_requests_processed(self, requests, approved: bool):
        created = []
        for request in requests:
            status_label = '승인' if approved else '거부'
            created.extend(self._send(
                [request.requested_by],
                type='success' if approved else 'warning',
                title=f'자재 요청 {status_label}',
                message=f'자재 요청 {request.request_number}이(가) {status_label}되었습니다.',
                related_entity_type='material_request',
                related_entity_id=request.id,
            ))
        return created

    def payslip_issued(self, snapshot):
        return self._send(
            [snapshot.worker_id],
            type='info',
            title='급여명세서 발행',
            message=f'{snapshot.year}년 {snapshot.month}월 급여명세서가 발행되었습니다.',
            related_entity_type='salary_snapshot',
            related_entity_id=snapshot.id,
            action_url='/mobile/payslips',
        )

    def document_shared(self, document, user_ids, sharer_name: str):
        return self._send(
            user_ids,
            type='info',
            title='문서 공유',
            message=f'{sharer_name}님이 "{document.title}" 문서를 공유했습니다.',
            related_entity_type='document',
            related_entity_id=document.id,
            action_url=f'/documents/{document.id}',
        )
