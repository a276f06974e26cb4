# backend/clinicops/repositories/base_repository.py
"""
Base Repository for the clinic scheduling engine.

Provides the common data access patterns shared by every repository:
- Dialect detection for store-specific SQL
- Creation without committing (transactions belong to services)
- Version-checked updates for optimistic concurrency

Store failures are wrapped in RepositoryException; business outcomes
(not found, stale version) surface as domain exceptions.
"""

import logging
from typing import Any, Generic, Optional, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.exceptions import NotFoundException, RepositoryException, VersionConflictException
from ..database.session_utils import get_dialect_name

T = TypeVar("T")

logger = logging.getLogger(__name__)


class BaseRepository(Generic[T]):
    """
    Concrete base repository with common data access patterns.

    Attributes:
        db: SQLAlchemy session
        model: SQLAlchemy model class
    """

    def __init__(self, db: Session, model: Type[T]):
        self.db = db
        self.model = model
        self.logger = logging.getLogger(f"{__name__}.{model.__name__}")

    @property
    def dialect_name(self) -> str:
        return get_dialect_name(self.db)

    def create(self, **kwargs: Any) -> T:
        """
        Create a new entity.

        Note: Does NOT commit - transaction management is handled by service layer.
        """
        try:
            entity = self.model(**kwargs)
            self.db.add(entity)
            self.db.flush()
            return entity
        except IntegrityError as exc:
            self.logger.error(
                "Integrity error creating %s: %s", self.model.__name__, exc, exc_info=True
            )
            raise RepositoryException(f"Integrity constraint violated: {exc}") from exc
        except SQLAlchemyError as e:
            self.logger.error(f"Error creating {self.model.__name__}: {str(e)}")
            raise RepositoryException(f"Failed to create {self.model.__name__}: {str(e)}")

    def update_versioned(
        self, entity_id: str, expected_version: int, tenant_id: Optional[str] = None, **values: Any
    ) -> T:
        """
        Apply ``values`` only if the row still carries ``expected_version``.

        The version is bumped by one in the same statement. A row that moved on
        raises VersionConflictException; a missing row raises NotFoundException.
        """
        name = self.model.__name__
        conditions = [self.model.id == entity_id, self.model.version == expected_version]
        if tenant_id is not None:
            conditions.append(self.model.tenant_id == tenant_id)
        stmt = (
            update(self.model)
            .where(*conditions)
            .values(version=self.model.version + 1, **values)
            .execution_options(synchronize_session=False)
        )
        try:
            result = self.db.execute(stmt)
        except SQLAlchemyError as e:
            self.logger.error(f"Error updating {name} {entity_id}: {str(e)}")
            raise RepositoryException(f"Failed to update {name}: {str(e)}")

        if not result.rowcount:
            lookup = select(self.model.version).where(*conditions[:1], *conditions[2:])
            current = self.db.execute(lookup).scalar_one_or_none()
            if current is None:
                raise NotFoundException(f"{name} not found", code="NOT_FOUND")
            self.logger.warning(
                "Optimistic concurrency conflict",
                extra={
                    "entity": name,
                    "entity_id": entity_id,
                    "expected_version": expected_version,
                    "current_version": current,
                },
            )
            raise VersionConflictException(name, entity_id, expected_version, current)

        entity = self.db.get(self.model, entity_id)
        if entity is None:
            raise NotFoundException(f"{name} not found", code="NOT_FOUND")
        self.db.refresh(entity)
        return entity
