"""
BaseService -- shared shape of the SQLAlchemy collaborators.

Both the proposal store and the actor directory wrap one caller-owned
``Session`` and one primary ORM model.  They flush, never commit: the
caller (``session_scope`` or a test fixture) decides the transaction's
fate, so a refused compare-and-swap leaves nothing behind.
"""

from abc import ABC
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import select
from sqlalchemy.orm import Session

from approval_kernel.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)


class BaseService(ABC, Generic[ModelType]):
    """Session holder with a lookup helper over ``model``."""

    model: ClassVar[type[Base]]

    def __init__(self, session: Session):
        self.session = session

    def _find(self, *criteria: Any, refresh: bool = False) -> ModelType | None:
        """Single ``model`` row matching ``criteria``, or None.

        ``refresh`` overwrites an already-loaded instance with the row as
        it is now in the database.
        """
        stmt = select(self.model).where(*criteria)
        if refresh:
            stmt = stmt.execution_options(populate_existing=True)
        return self.session.scalars(stmt).one_or_none()
