"""
approval_kernel.services.actor_directory -- SQLAlchemy-backed ActorDirectory.

Responsibility:
    Resolves an actor name into an ``Actor`` (role and scope).  Read-only
    from the workflow's point of view; ``add`` exists for seeding.

Architecture position:
    Kernel > Services.  May import from domain/, models/, db/.

Failure modes:
    - ActorNotFoundError if no active actor carries the name.
"""

from approval_kernel.domain.roles import Actor
from approval_kernel.exceptions import ActorNotFoundError
from approval_kernel.models.actor import ActorModel
from approval_kernel.services.base import BaseService


class SqlAlchemyActorDirectory(BaseService[ActorModel]):
    """ActorDirectory over the ``actors`` table."""

    model = ActorModel

    def get_actor(self, name: str) -> Actor:
        model = self._find(ActorModel.name == name, ActorModel.is_active.is_(True))
        if model is None:
            raise ActorNotFoundError(name)
        return model.to_dto()

    def add(self, actor: Actor) -> Actor:
        self.session.add(ActorModel.from_dto(actor))
        self.session.flush()
        return actor
