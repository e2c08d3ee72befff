# votely/realtime/registry.py
# Which connected observers are in which broadcast rooms.
import logging
import uuid
from typing import Callable, Dict, List, Optional, Set

from fastapi.encoders import jsonable_encoder

from votely.config import ADMIN_ROOM, ROLE_ADMIN
from votely.errors import AuthorizationError

logger = logging.getLogger(__name__)


def election_room(election_id) -> str:
    return f"election-{election_id}"


class Observer:
    """A long-lived realtime connection, optionally tied to an authenticated user."""

    def __init__(self, websocket, user: Optional[dict] = None):
        self.id = uuid.uuid4().hex
        self.websocket = websocket
        self.user = user

    @property
    def role(self) -> Optional[str]:
        return self.user.get("role") if self.user else None

    async def send(self, event: str, data) -> None:
        await self.websocket.send_json({"event": event, "data": jsonable_encoder(data)})

    def __repr__(self):
        return f"<Observer {self.id} role={self.role}>"


def default_join_policy(observer: Observer, room: str) -> bool:
    if room == ADMIN_ROOM:
        return observer.role == ROLE_ADMIN
    return True


class SubscriptionRegistry:
    def __init__(self, can_join: Callable[[Observer, str], bool] = default_join_policy):
        self._can_join = can_join
        self._rooms: Dict[str, Set[Observer]] = {}
        self._memberships: Dict[Observer, Set[str]] = {}

    def join(self, observer: Observer, room: str) -> None:
        if not self._can_join(observer, room):
            logger.warning(f"{observer!r} refused entry to room {room}")
            raise AuthorizationError(f"Not authorized to join {room}")
        self._rooms.setdefault(room, set()).add(observer)
        self._memberships.setdefault(observer, set()).add(room)

    def leave(self, observer: Observer, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(observer)
            if not members:
                del self._rooms[room]
        rooms = self._memberships.get(observer)
        if rooms is not None:
            rooms.discard(room)

    def disconnect(self, observer: Observer) -> None:
        for room in list(self._memberships.pop(observer, ())):
            self.leave(observer, room)

    def members(self, room: str) -> List[Observer]:
        # Copy so callers can iterate while observers come and go
        return list(self._rooms.get(room, ()))

    def rooms_of(self, observer: Observer) -> Set[str]:
        return set(self._memberships.get(observer, ()))
