"""Request actor resolution and role guards.

Authentication (OTP, Firebase, token issuing) happens in the gateway in front
of this service. The gateway forwards the authenticated identity as
``X-Actor-Id`` and ``X-Actor-Role`` headers; the guards below only enforce
roles on top of that identity.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from laundry.models.user import ActorRole


@dataclass(frozen=True)
class Actor:
    """The authenticated party making a request."""
    id: int
    role: ActorRole


async def get_current_actor(
    x_actor_id: Optional[str] = Header(None),
    x_actor_role: Optional[str] = Header(None),
) -> Actor:
    """Build the actor from gateway headers."""
    if not x_actor_id or not x_actor_role:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated"
        )
    try:
        actor_id = int(x_actor_id)
        role = ActorRole(x_actor_role.upper())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid actor credentials"
        )
    return Actor(id=actor_id, role=role)


def require_role(*roles: ActorRole):
    """Create a dependency that only admits the given roles."""
    async def role_checker(actor: Actor = Depends(get_current_actor)) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"This action requires role: {', '.join(r.value for r in roles)}"
            )
        return actor
    return role_checker


require_customer = require_role(ActorRole.CUSTOMER)
require_laundry = require_role(ActorRole.LAUNDRY)
require_actor = require_role(ActorRole.CUSTOMER, ActorRole.LAUNDRY, ActorRole.ADMIN)
