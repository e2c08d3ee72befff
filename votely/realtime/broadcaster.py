# votely/realtime/broadcaster.py
# Best-effort fan-out of vote events to rooms.
import asyncio
import logging

from votely.config import ADMIN_ROOM, SEND_TIMEOUT
from votely.models.vote_model import vote_out
from votely.realtime.registry import Observer, SubscriptionRegistry, election_room
from votely.utils import id_str

logger = logging.getLogger(__name__)

VOTE_CAST = "vote-cast"
NEW_VOTE = "new-vote"
VOTE_DELETED = "vote-deleted"


def tally_payload(vote: dict, votes_count: int) -> dict:
    return {
        "electionId": id_str(vote["election_id"]),
        "candidateId": id_str(vote["candidate_id"]),
        "votesCount": votes_count,
    }


class RealtimeBroadcaster:
    """
    Publishes vote events to the observers currently in a room.

    Delivery is at-most-once with no backlog: observers that join after an
    event was published never see it. Callers publish only after the store
    write they describe has completed. Sends to one room run concurrently and
    each is bounded by `send_timeout`, so a client that stops reading cannot
    hold up the vote request for longer than that.
    """

    def __init__(self, registry: SubscriptionRegistry, send_timeout: float = SEND_TIMEOUT):
        self.registry = registry
        self.send_timeout = send_timeout

    async def publish(self, room: str, event: str, payload: dict) -> int:
        observers = self.registry.members(room)
        results = await asyncio.gather(*[self._deliver(o, room, event, payload) for o in observers])
        return sum(results)

    async def _deliver(self, observer: Observer, room: str, event: str, payload: dict) -> bool:
        try:
            await asyncio.wait_for(observer.send(event, payload), self.send_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Dropping {observer!r}: '{event}' send to {room} timed out")
            self.registry.disconnect(observer)
            return False
        except Exception as e:
            logger.warning(f"Dropping {observer!r} after failed '{event}' send to {room}: {e}")
            self.registry.disconnect(observer)
            return False
        return True

    async def vote_cast(self, vote: dict, votes_count: int) -> None:
        await self.publish(election_room(vote["election_id"]), VOTE_CAST, tally_payload(vote, votes_count))
        await self.publish(ADMIN_ROOM, NEW_VOTE, vote_out(vote))

    async def vote_deleted(self, vote: dict, votes_count: int) -> None:
        await self.publish(election_room(vote["election_id"]), VOTE_DELETED, tally_payload(vote, votes_count))
        await self.publish(ADMIN_ROOM, VOTE_DELETED, vote_out(vote))
