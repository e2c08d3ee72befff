# votely/tally.py
import logging
from typing import Callable, Optional

from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from votely.database import CANDIDATES, ELECTIONS, VOTES
from votely.errors import AuthorizationError, InternalError, NotFoundError
from votely.lifecycle import results_visible
from votely.models.candidate_model import candidate_out
from votely.models.election_model import election_out
from votely.utils import parse_object_id, utcnow

logger = logging.getLogger(__name__)


class TallyEngine:
    """
    Per-candidate vote counters.

    `votes_count` is a projection of the vote ledger. It is only ever changed
    with a single `$inc` so concurrent votes for the same candidate cannot
    lose updates.
    """

    def __init__(self, db, clock: Callable = utcnow):
        self.db = db
        self.clock = clock
        self.candidates = db[CANDIDATES]
        self.elections = db[ELECTIONS]
        self.votes = db[VOTES]

    async def increment(self, candidate_id) -> int:
        try:
            candidate = await self.candidates.find_one_and_update(
                {"_id": candidate_id},
                {"$inc": {"votes_count": 1}},
                return_document=ReturnDocument.AFTER,
            )
        except PyMongoError as e:
            logger.error(f"Tally increment failed for candidate {candidate_id}: {e}")
            raise InternalError("Failed to update vote count")
        if candidate is None:
            raise NotFoundError("Candidate not found")
        return candidate["votes_count"]

    async def decrement(self, candidate_id) -> int:
        try:
            candidate = await self.candidates.find_one_and_update(
                {"_id": candidate_id, "votes_count": {"$gt": 0}},
                {"$inc": {"votes_count": -1}},
                return_document=ReturnDocument.AFTER,
            )
            if candidate is not None:
                return candidate["votes_count"]

            # Nothing matched: either the candidate is gone or already at zero
            candidate = await self.candidates.find_one({"_id": candidate_id}, {"votes_count": 1})
        except PyMongoError as e:
            logger.error(f"Tally decrement failed for candidate {candidate_id}: {e}")
            raise InternalError("Failed to update vote count")
        if candidate is None:
            logger.warning(f"Candidate {candidate_id} vanished before its tally was decremented")
            return 0
        logger.warning(f"Tally for candidate {candidate_id} already at zero, not decremented")
        return candidate.get("votes_count", 0)

    async def get_results(self, election_id, requester: Optional[dict]) -> dict:
        election_oid = parse_object_id(election_id, "election")
        election = await self.elections.find_one({"_id": election_oid})
        if not election:
            raise NotFoundError("Election not found")

        now = self.clock()
        role = requester.get("role") if requester else None
        if not results_visible(election, now, role):
            raise AuthorizationError("Results are only available after the election has ended")

        candidates = [
            c async for c in self.candidates.find(
                {"election_id": election_oid}, sort=[("votes_count", DESCENDING)]
            )
        ]
        total_votes = await self.votes.count_documents({"election_id": election_oid})
        return {
            "election": election_out(election, now),
            "candidates": [candidate_out(c) for c in candidates],
            "totalVotes": total_votes,
        }

    async def verify_integrity(self, election_id) -> dict:
        """Compare every stored counter of an election with the ledger. Read-only."""
        election_oid = parse_object_id(election_id, "election")
        if not await self.elections.find_one({"_id": election_oid}, {"_id": 1}):
            raise NotFoundError("Election not found")

        report = []
        async for candidate in self.candidates.find({"election_id": election_oid}):
            ledger_count = await self.votes.count_documents({"candidate_id": candidate["_id"]})
            stored = candidate.get("votes_count", 0)
            if stored != ledger_count:
                logger.warning(
                    f"Tally mismatch for candidate {candidate['_id']}: stored={stored} ledger={ledger_count}"
                )
            report.append({
                "candidateId": str(candidate["_id"]),
                "votesCount": stored,
                "ledgerCount": ledger_count,
                "consistent": stored == ledger_count,
            })

        return {
            "electionId": str(election_oid),
            "consistent": all(r["consistent"] for r in report),
            "candidates": report,
        }
