"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Provides the common constructor and session-handling contract for every
    write-side service.  Services receive a SQLAlchemy ``Session`` and use
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    Transaction boundaries: services flush within the caller's transaction
    and never commit or roll back themselves.  The caller (InventoryLedger,
    a collaborator's own ``session_scope()``, or a test harness) owns
    commit/rollback, which is what makes a multi-item consumption a single
    atomic unit.
"""

from abc import ABC
from typing import Generic, TypeVar

from sqlalchemy.orm import Session

from stock_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Query-only (read) methods belong in ``stock_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        self.session = session
