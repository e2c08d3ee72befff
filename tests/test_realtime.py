import asyncio
from datetime import datetime, timezone
from unittest import IsolatedAsyncioTestCase, TestCase
from unittest.mock import AsyncMock

from bson import ObjectId

from votely.config import ADMIN_ROOM
from votely.errors import AuthorizationError
from votely.realtime import Observer, RealtimeBroadcaster, SubscriptionRegistry, election_room


def observer(role=None):
    user = {"_id": ObjectId(), "role": role} if role else None
    return Observer(AsyncMock(), user)


class SubscriptionRegistryTests(TestCase):
    def setUp(self):
        self.registry = SubscriptionRegistry()

    def test_join_and_leave_are_idempotent(self):
        o = observer()
        self.registry.join(o, "election-1")
        self.registry.join(o, "election-1")
        self.assertEqual(self.registry.members("election-1"), [o])

        self.registry.leave(o, "election-1")
        self.registry.leave(o, "election-1")
        self.assertEqual(self.registry.members("election-1"), [])
        self.assertEqual(self.registry.rooms_of(o), set())

    def test_disconnect_leaves_every_room(self):
        o = observer("Admin")
        other = observer()
        self.registry.join(o, "election-1")
        self.registry.join(o, "election-2")
        self.registry.join(o, ADMIN_ROOM)
        self.registry.join(other, "election-1")

        self.registry.disconnect(o)

        self.assertEqual(self.registry.members("election-1"), [other])
        self.assertEqual(self.registry.members("election-2"), [])
        self.assertEqual(self.registry.members(ADMIN_ROOM), [])
        self.registry.disconnect(o)

    def test_admin_room_requires_admin_role(self):
        with self.assertRaises(AuthorizationError):
            self.registry.join(observer(), ADMIN_ROOM)
        with self.assertRaises(AuthorizationError):
            self.registry.join(observer("Voter"), ADMIN_ROOM)
        self.assertEqual(self.registry.members(ADMIN_ROOM), [])

        admin = observer("Admin")
        self.registry.join(admin, ADMIN_ROOM)
        self.assertEqual(self.registry.members(ADMIN_ROOM), [admin])

    def test_custom_policy(self):
        registry = SubscriptionRegistry(can_join=lambda o, room: False)
        with self.assertRaises(AuthorizationError):
            registry.join(observer("Admin"), "election-1")

    def test_election_room_name(self):
        self.assertEqual(election_room("abc"), "election-abc")


class RealtimeBroadcasterTests(IsolatedAsyncioTestCase):
    def setUp(self):
        self.registry = SubscriptionRegistry()
        self.broadcaster = RealtimeBroadcaster(self.registry)
        self.election_id = ObjectId()
        self.vote = {
            "_id": ObjectId(),
            "voter_id": ObjectId(),
            "election_id": self.election_id,
            "candidate_id": ObjectId(),
            "voted_at": datetime(2026, 5, 1, 9, 1, tzinfo=timezone.utc),
        }
        self.viewer = observer()
        self.admin = observer("Admin")
        self.outsider = observer()
        self.registry.join(self.viewer, election_room(self.election_id))
        self.registry.join(self.admin, ADMIN_ROOM)
        self.registry.join(self.outsider, election_room(ObjectId()))

    def sent(self, o):
        return [call.args[0] for call in o.websocket.send_json.await_args_list]

    async def test_vote_cast_goes_to_election_room_and_admin_room(self):
        await self.broadcaster.vote_cast(self.vote, 1)

        self.assertEqual(self.sent(self.viewer), [{
            "event": "vote-cast",
            "data": {
                "electionId": str(self.election_id),
                "candidateId": str(self.vote["candidate_id"]),
                "votesCount": 1,
            },
        }])
        admin_frames = self.sent(self.admin)
        self.assertEqual(len(admin_frames), 1)
        self.assertEqual(admin_frames[0]["event"], "new-vote")
        self.assertEqual(admin_frames[0]["data"]["voteId"], str(self.vote["_id"]))
        self.assertEqual(admin_frames[0]["data"]["voterId"], str(self.vote["voter_id"]))
        self.assertEqual(admin_frames[0]["data"]["votedAt"], "2026-05-01T09:01:00+00:00")
        self.assertEqual(self.sent(self.outsider), [])

    async def test_vote_deleted_goes_to_both_rooms(self):
        await self.broadcaster.vote_deleted(self.vote, 0)

        viewer_frames = self.sent(self.viewer)
        self.assertEqual(viewer_frames[0]["event"], "vote-deleted")
        self.assertEqual(viewer_frames[0]["data"]["votesCount"], 0)
        admin_frames = self.sent(self.admin)
        self.assertEqual(admin_frames[0]["event"], "vote-deleted")
        self.assertEqual(admin_frames[0]["data"]["voteId"], str(self.vote["_id"]))

    async def test_failed_send_drops_observer_and_continues(self):
        broken = observer()
        broken.websocket.send_json.side_effect = RuntimeError("closed")
        self.registry.join(broken, election_room(self.election_id))

        delivered = await self.broadcaster.publish(election_room(self.election_id), "vote-cast", {"votesCount": 1})

        self.assertEqual(delivered, 1)
        self.assertEqual(len(self.sent(self.viewer)), 1)
        self.assertNotIn(broken, self.registry.members(election_room(self.election_id)))

    async def test_no_replay_for_late_joiners(self):
        await self.broadcaster.vote_cast(self.vote, 1)
        late = observer()
        self.registry.join(late, election_room(self.election_id))
        self.assertEqual(self.sent(late), [])

    async def test_stuck_send_times_out_and_drops_observer(self):
        async def never_returns(*args):
            await asyncio.Event().wait()

        stuck = observer()
        stuck.websocket.send_json.side_effect = never_returns
        self.registry.join(stuck, election_room(self.election_id))
        broadcaster = RealtimeBroadcaster(self.registry, send_timeout=0.05)

        delivered = await asyncio.wait_for(
            broadcaster.publish(election_room(self.election_id), "vote-cast", {"votesCount": 1}), 2
        )

        self.assertEqual(delivered, 1)
        self.assertEqual(len(self.sent(self.viewer)), 1)
        self.assertEqual(self.registry.rooms_of(stuck), set())
