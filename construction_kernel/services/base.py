"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for
    every service in the kernel layer.  All concrete services inherit
    from BaseService, receiving a SQLAlchemy ``Session`` that they use
    via ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.
    Every service in ``construction_kernel/services/`` that performs write
    operations extends this class.

Invariants enforced:
    - Transaction boundaries: services flush within the caller's
      transaction and never commit or rollback themselves.  The caller
      (HTTP handler, batch job, test harness) owns commit/rollback.
    - Store failures surface as ``StoreError``; the raw SQLAlchemy
      exception is attached as ``cause``.

Failure modes:
    - If a subclass calls ``session.commit()``, a template application or
      clone can no longer be rolled back as a unit by its caller.
"""

from abc import ABC
from typing import Any, Generic, TypeVar
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from construction_kernel.db.base import Base
from construction_kernel.exceptions import NotFoundError, StoreError

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Contract:
        Accepts a SQLAlchemy ``Session`` from the caller and uses
        ``session.flush()`` to persist changes within the active
        transaction.

    Non-goals:
        - Does NOT manage transaction lifecycle (commit/rollback).
        - Does NOT provide dashboard queries -- those belong in
          ``construction_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        """
        Initialize the service.

        Preconditions:
            - ``session`` is a valid, open SQLAlchemy session.

        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session

    def _get_or_raise(
        self,
        model: type[Any],
        entity_id: UUID,
        error_cls: type[NotFoundError],
    ) -> Any:
        """Load ``model`` by primary key or raise ``error_cls(entity_id)``."""
        entity = self._find(model, entity_id)
        if entity is None:
            raise error_cls(entity_id)
        return entity

    def _find(self, model: type[Any], entity_id: UUID) -> Any | None:
        """Load ``model`` by primary key; None when absent."""
        try:
            return self.session.get(model, entity_id)
        except SQLAlchemyError as exc:
            raise StoreError(f"get {model.__name__}", exc) from exc

    def _flush(self, operation: str) -> None:
        try:
            self.session.flush()
        except SQLAlchemyError as exc:
            raise StoreError(operation, exc) from exc

    def _next_position(self, model: type[Any], parent_column: Any, parent_id: UUID) -> int:
        """Creation index of the next child under ``parent_id``."""
        try:
            count = self.session.scalar(
                select(func.count()).select_from(model).where(parent_column == parent_id)
            )
        except SQLAlchemyError as exc:
            raise StoreError(f"count {model.__name__}", exc) from exc
        return int(count or 0)
