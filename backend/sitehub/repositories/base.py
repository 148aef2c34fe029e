from contextlib import contextmanager
from typing import TypeVar, Generic, Type, Optional, List, Dict, Any
from uuid import UUID
from sqlalchemy.exc import SQLAlchemyError
from ..extensions import db

T = TypeVar('T')

MAX_PER_PAGE = 200


class BaseRepository(Generic[T]):
    """
    CRUD shared by every SiteHub repository.

    Write helpers commit on success and roll the session back before
    re-raising any SQLAlchemyError. ``add`` stages a row without committing so
    a service can build several rows and finish with ``commit``.
    """

    def __init__(self, model_class: Type[T]):
        self.model_class = model_class
        self.session = db.session

    @contextmanager
    def _transaction(self):
        try:
            yield self.session
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise

    def _by_ids(self, ids: List[UUID]):
        return self.session.query(self.model_class).filter(self.model_class.id.in_(ids))

    def add(self, instance: T) -> T:
        self.session.add(instance)
        return instance

    def create(self, **fields) -> T:
        """
        Insert one row.

        Args:
            **fields: Column values for the new row

        Returns:
            The committed instance
        """
        instance = self.model_class(**fields)
        with self._transaction() as session:
            session.add(instance)
        return instance

    def get_by_id(self, id: UUID) -> Optional[T]:
        if not id:
            return None
        return self.session.query(self.model_class).filter(self.model_class.id == id).first()

    def get_by_ids(self, ids: List[UUID]) -> List[T]:
        """Rows for the given ids in one query; unknown ids are left out."""
        if not ids:
            return []
        return self._by_ids(ids).all()

    def update(self, id: UUID, **fields) -> Optional[T]:
        """
        Set attributes on one row.

        Args:
            id: Primary key of the row
            **fields: Attribute values; names the model does not define are skipped

        Returns:
            The updated instance, or None when no row has that id
        """
        instance = self.get_by_id(id)
        if instance is None:
            return None
        with self._transaction():
            for key, value in fields.items():
                if hasattr(instance, key):
                    setattr(instance, key, value)
        return instance

    def update_many(self, ids: List[UUID], **values) -> int:
        """Bulk UPDATE by id; returns the affected row count."""
        if not ids:
            return 0
        with self._transaction():
            return self._by_ids(ids).update(values, synchronize_session=False)

    def delete(self, id: UUID) -> bool:
        """
        Delete one row through the ORM so relationship cascades run.

        Returns:
            False when no row has that id
        """
        instance = self.get_by_id(id)
        if instance is None:
            return False
        with self._transaction() as session:
            session.delete(instance)
        return True

    def delete_many(self, ids: List[UUID]) -> int:
        """Bulk DELETE by id; returns the affected row count."""
        if not ids:
            return 0
        with self._transaction():
            return self._by_ids(ids).delete(synchronize_session=False)

    def paginate(self, query, page: int = 1, per_page: int = 20) -> Dict[str, Any]:
        """
        Run a prepared query one page at a time.

        Args:
            query: Query with filters and ordering already applied
            page: 1-based page number
            per_page: Page size, capped at MAX_PER_PAGE

        Returns:
            Dict with 'items', 'total', 'page', 'per_page' and 'pages'
        """
        page = max(int(page or 1), 1)
        per_page = min(max(int(per_page or 20), 1), MAX_PER_PAGE)
        total = query.order_by(None).count()
        return {
            'items': query.offset((page - 1) * per_page).limit(per_page).all(),
            'total': total,
            'page': page,
            'per_page': per_page,
            'pages': -(-total // per_page),
        }

    def commit(self) -> None:
        with self._transaction():
            pass

    def rollback(self) -> None:
        self.session.rollback()
