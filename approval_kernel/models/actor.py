"""
Module: approval_kernel.models.actor
Responsibility: ORM persistence for people who may act on proposals.
    Rows back the read-only ActorDirectory used to resolve an actor name
    into role and scope.
Architecture position: Kernel > Models.  May import from db/base.py and
    domain/ only.

Invariants enforced:
    - ``name`` is unique: the directory is keyed by display name, which is
      also what the ledger records as approver.

Failure modes:
    - IntegrityError on duplicate name (uq_actor_name constraint).
"""

from sqlalchemy import Boolean, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from approval_kernel.db.base import Base
from approval_kernel.domain.roles import Actor


class ActorModel(Base):
    """
    A user of the approval workflow.

    Which of department / jobsite is present determines the actor's
    authorization scope (see Actor).
    """

    __tablename__ = "actors"

    __table_args__ = (
        UniqueConstraint("name", name="uq_actor_name"),
    )

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    role_name: Mapped[str] = mapped_column(String(200), nullable=False)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    jobsite: Mapped[str | None] = mapped_column(String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Actor {self.name} ({self.role_name})>"

    def to_dto(self) -> Actor:
        return Actor(
            name=self.name,
            role_name=self.role_name,
            department=self.department,
            jobsite=self.jobsite,
        )

    @classmethod
    def from_dto(cls, dto: Actor) -> "ActorModel":
        return cls(
            name=dto.name,
            role_name=dto.role_name,
            department=dto.department,
            jobsite=dto.jobsite,
        )
