import logging

import motor.motor_asyncio
from pymongo import ASCENDING, DESCENDING

from votely.config import MONGO_DB, MONGO_URI

logger = logging.getLogger(__name__)

USERS = "users"
ELECTIONS = "elections"
CANDIDATES = "candidates"
VOTES = "votes"


def create_client(uri: str = MONGO_URI) -> motor.motor_asyncio.AsyncIOMotorClient:
    client = motor.motor_asyncio.AsyncIOMotorClient(uri)
    logger.info(f"MongoDB client created for database: {MONGO_DB}")
    return client


async def ensure_indexes(db) -> None:
    """
    Create the indexes the application relies on.

    The compound unique index on votes(voter_id, election_id) is what makes the
    store itself reject a second vote by the same voter in the same election,
    including two inserts racing each other.
    """
    await db[USERS].create_index("email", unique=True)
    await db[VOTES].create_index(
        [("voter_id", ASCENDING), ("election_id", ASCENDING)],
        unique=True,
        name="one_vote_per_voter_per_election",
    )
    await db[VOTES].create_index("candidate_id")
    await db[VOTES].create_index([("election_id", ASCENDING), ("voted_at", DESCENDING)])
    await db[CANDIDATES].create_index("election_id")
    logger.info("MongoDB indexes ensured")
