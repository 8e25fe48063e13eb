"""Actor issuing a request, as resolved by the routing/authorization layer."""

from enum import Enum

from pydantic import BaseModel


class ActorRole(str, Enum):
    """Actor roles."""

    PATIENT = "patient"
    PRACTITIONER = "practitioner"
    FRONT_DESK = "front_desk"
    ADMIN = "admin"


class Actor(BaseModel):
    """Authenticated actor. For practitioners ``id`` is the practitioner ID."""

    id: str
    role: ActorRole

    @property
    def is_admin(self) -> bool:
        return self.role == ActorRole.ADMIN
