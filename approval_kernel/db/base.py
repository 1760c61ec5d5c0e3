"""
Module: approval_kernel.db.base
Responsibility: Declarative base shared by the proposal, history and actor
    tables, and the portable UUID column type they use for identifiers.
Architecture position: Kernel > DB, lowest layer.  Imports nothing from
    models/, services/ or domain/.

Invariants enforced:
    - Every table has a surrogate ``id`` (uuid4) distinct from the domain
      identifiers (``proposal_id``, ``entry_id``), which carry their own
      unique constraints.
    - Amounts are Numeric, never float.
    - Timestamps are declared timezone-aware; SQLite drops the offset, and
      the models restore UTC on read.
"""

from datetime import datetime
from decimal import Decimal
from typing import ClassVar
from uuid import UUID, uuid4

from sqlalchemy import BigInteger, DateTime, MetaData, Numeric, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
from sqlalchemy.types import TypeDecorator

NAMING_CONVENTION = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}


class UUIDString(TypeDecorator):
    """UUID kept as its 36-character string form, on every backend."""

    impl = String(36)
    cache_ok = True

    def process_bind_param(self, value: UUID | str | None, dialect) -> str | None:
        return None if value is None else str(value)

    def process_result_value(self, value: str | None, dialect) -> UUID | None:
        return None if value is None else UUID(value)


class Base(DeclarativeBase):
    metadata = MetaData(naming_convention=NAMING_CONVENTION)

    type_annotation_map: ClassVar[dict] = {
        Decimal: Numeric(38, 9),
        datetime: DateTime(timezone=True),
        UUID: UUIDString(),
        int: BigInteger,
    }

    id: Mapped[UUID] = mapped_column(UUIDString(), primary_key=True, default=uuid4)
