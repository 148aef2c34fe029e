from datetime import datetime
from typing import Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy import and_, or_
from sqlalchemy.exc import SQLAlchemyError
from .base import BaseRepository
from ..models.notifications import Notification
from ..utils import utc_now


class NotificationRepository(BaseRepository[Notification]):
    """Repository for in-app notifications."""

    def __init__(self):
        super().__init__(Notification)

    def list_for_user(self, user_id: UUID, page: int = 1, per_page: int = 20, unread_only: bool = False) -> Dict[str, Any]:
        query = self.session.query(Notification).filter(Notification.user_id == user_id)
        if unread_only:
            query = query.filter(Notification.is_read.is_(False))
        query = query.order_by(Notification.created_at.desc())
        return self.paginate(query, page, per_page)

    def count_unread(self, user_id: UUID) -> int:
        return self.session.query(Notification).filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(False),
        ).count()

    def get_since(self, user_id: UUID, since: Optional[datetime], since_id: Optional[UUID] = None,
                  limit: int = 100) -> List[Notification]:
        """
        Notifications after a (created_at, id) cursor, oldest first.

        Args:
            user_id: Recipient profile UUID
            since: Cursor timestamp (None returns the latest ``limit``)
            since_id: Cursor id; rows at exactly ``since`` with a greater id are
                returned. Without it every row at ``since`` counts as seen.
            limit: Maximum rows returned

        Returns:
            List of Notification instances
        """
        query = self.session.query(Notification).filter(Notification.user_id == user_id)
        if since is not None:
            after = Notification.created_at > since
            if since_id is not None:
                after = or_(after, and_(Notification.created_at == since, Notification.id > since_id))
            query = query.filter(after)
            return query.order_by(Notification.created_at.asc(), Notification.id.asc()).limit(limit).all()
        latest = query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()
        return list(reversed(latest))

    def create_many_for_users(self, user_ids: List[UUID], **fields) -> List[Notification]:
        if not user_ids:
            return []
        return self.create_many([dict(fields, user_id=user_id) for user_id in user_ids])

    def create_many(self, items: List[Dict[str, Any]]) -> List[Notification]:
        try:
            instances = [Notification(**item) for item in items]
            self.session.add_all(instances)
            self.session.commit()
            return instances
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e

    def mark_read(self, user_id: UUID, notification_ids: Optional[List[UUID]] = None) -> int:
        """
        Mark some or all of a user's unread notifications as read.

        Returns:
            Number of notifications updated
        """
        try:
            query = self.session.query(Notification).filter(
                Notification.user_id == user_id,
                Notification.is_read.is_(False),
            )
            if notification_ids is not None:
                query = query.filter(Notification.id.in_(notification_ids))
            count = query.update({'is_read': True, 'read_at': utc_now()}, synchronize_session=False)
            self.session.commit()
            return count
        except SQLAlchemyError as e:
            self.session.rollback()
            raise e
