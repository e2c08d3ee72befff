# votely/ledger.py
import logging
from typing import Callable, List, Optional

from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError, PyMongoError

from votely.config import ROLE_ADMIN
from votely.database import CANDIDATES, ELECTIONS, USERS, VOTES
from votely.errors import (
    AlreadyVotedError,
    AuthorizationError,
    CandidateNotInElectionError,
    InternalError,
    NotFoundError,
)
from votely.lifecycle import ensure_ongoing
from votely.realtime.broadcaster import RealtimeBroadcaster
from votely.tally import TallyEngine
from votely.utils import parse_object_id, utcnow

logger = logging.getLogger(__name__)


class VoteLedger:
    """
    The collection of Vote records, source of truth for who voted for whom.

    At most one vote exists per (voter, election). The guarantee comes from the
    unique index on the votes collection; the lookup done before inserting only
    gives the common case an early answer.
    """

    def __init__(self, db, tally: TallyEngine, broadcaster: Optional[RealtimeBroadcaster] = None,
                 clock: Callable = utcnow):
        self.db = db
        self.tally = tally
        self.broadcaster = broadcaster
        self.clock = clock
        self.votes = db[VOTES]
        self.elections = db[ELECTIONS]
        self.candidates = db[CANDIDATES]
        self.users = db[USERS]

    async def cast_vote(self, voter_id, election_id, candidate_id) -> dict:
        voter_oid = parse_object_id(voter_id, "voter")
        election_oid = parse_object_id(election_id, "election")
        candidate_oid = parse_object_id(candidate_id, "candidate")

        election = await self.elections.find_one({"_id": election_oid})
        if not election:
            raise NotFoundError("Election not found")

        ensure_ongoing(election, self.clock())

        candidate = await self.candidates.find_one({"_id": candidate_oid, "election_id": election_oid})
        if not candidate:
            raise CandidateNotInElectionError()

        if await self.has_voted(voter_oid, election_oid):
            logger.warning(f"Voter {voter_oid} already voted in election {election_oid}")
            raise AlreadyVotedError()

        vote = {
            "voter_id": voter_oid,
            "election_id": election_oid,
            "candidate_id": candidate_oid,
            "voted_at": self.clock(),
        }
        try:
            result = await self.votes.insert_one(vote)
        except DuplicateKeyError:
            # Lost the race against a concurrent cast by the same voter
            logger.warning(f"Duplicate vote rejected by store for voter {voter_oid} in election {election_oid}")
            raise AlreadyVotedError()
        except PyMongoError as e:
            logger.error(f"Failed to record vote for voter {voter_oid}: {e}")
            raise InternalError("Failed to record vote")
        vote["_id"] = result.inserted_id

        try:
            votes_count = await self.tally.increment(candidate_oid)
        except (InternalError, NotFoundError):
            await self._undo_insert(vote)
            raise InternalError("Failed to record vote")

        await self._update_voter(voter_oid, {"$addToSet": {"voted_elections": election_oid}})
        logger.info(f"Vote {vote['_id']} recorded: election={election_oid} candidate={candidate_oid}")

        await self._broadcast("vote_cast", vote, votes_count)
        return vote

    async def retract_vote(self, vote_id, requester_role: Optional[str]) -> dict:
        if requester_role != ROLE_ADMIN:
            raise AuthorizationError("Not authorized as an admin")
        vote_oid = parse_object_id(vote_id, "vote")

        try:
            vote = await self.votes.find_one_and_delete({"_id": vote_oid})
        except PyMongoError as e:
            logger.error(f"Failed to delete vote {vote_oid}: {e}")
            raise InternalError("Failed to delete vote")
        if vote is None:
            raise NotFoundError("Vote not found")

        try:
            votes_count = await self.tally.decrement(vote["candidate_id"])
        except InternalError:
            await self._undo_delete(vote)
            raise InternalError("Failed to delete vote")

        await self._update_voter(vote["voter_id"], {"$pull": {"voted_elections": vote["election_id"]}})
        logger.info(f"Vote {vote_oid} retracted: election={vote['election_id']} candidate={vote['candidate_id']}")

        await self._broadcast("vote_deleted", vote, votes_count)
        return vote

    async def has_voted(self, voter_id, election_id) -> bool:
        existing = await self.votes.find_one(
            {"voter_id": parse_object_id(voter_id, "voter"),
             "election_id": parse_object_id(election_id, "election")},
            {"_id": 1},
        )
        return existing is not None

    async def get_vote(self, vote_id) -> dict:
        vote = await self.votes.find_one({"_id": parse_object_id(vote_id, "vote")})
        if not vote:
            raise NotFoundError("Vote not found")
        return vote

    async def list_votes(self) -> List[dict]:
        return [v async for v in self.votes.find({}, sort=[("voted_at", DESCENDING)])]

    async def votes_for_voter(self, voter_id) -> List[dict]:
        return [
            v async for v in self.votes.find(
                {"voter_id": parse_object_id(voter_id, "voter")}, sort=[("voted_at", DESCENDING)]
            )
        ]

    async def count_for_election(self, election_id) -> int:
        return await self.votes.count_documents({"election_id": parse_object_id(election_id, "election")})

    async def count_for_candidate(self, candidate_id) -> int:
        return await self.votes.count_documents({"candidate_id": parse_object_id(candidate_id, "candidate")})

    async def _undo_insert(self, vote: dict) -> None:
        try:
            await self.votes.delete_one({"_id": vote["_id"]})
        except PyMongoError as e:
            logger.error(f"Could not roll back vote {vote['_id']} after tally failure: {e}")

    async def _undo_delete(self, vote: dict) -> None:
        try:
            await self.votes.insert_one(vote)
        except PyMongoError as e:
            logger.error(f"Could not restore vote {vote['_id']} after tally failure: {e}")

    async def _update_voter(self, voter_oid, update: dict) -> None:
        try:
            await self.users.update_one({"_id": voter_oid}, update)
        except PyMongoError as e:
            # The ledger entry stands; voted_elections can be rebuilt from it
            logger.error(f"Failed to update voted elections of user {voter_oid}: {e}")

    async def _broadcast(self, kind: str, vote: dict, votes_count: int) -> None:
        if self.broadcaster is None:
            return
        try:
            await getattr(self.broadcaster, kind)(vote, votes_count)
        except Exception as e:
            logger.warning(f"Broadcast '{kind}' for vote {vote['_id']} failed: {e}")
