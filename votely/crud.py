# votely/crud.py
# Plain record operations for users, elections and candidates.
import logging
from datetime import datetime
from typing import List, Optional

from pymongo import DESCENDING
from pymongo.errors import DuplicateKeyError

from votely.config import ROLE_ADMIN, ROLE_VOTER, STATUS_ACTIVE
from votely.database import CANDIDATES, ELECTIONS, USERS
from votely.errors import (
    AuthenticationError,
    AuthorizationError,
    ConflictError,
    DuplicateRecordError,
    NotFoundError,
    ValidationError,
)
from votely.lifecycle import (
    ENDED,
    effective_status,
    ensure_dates_mutable,
    ensure_no_votes,
    ensure_ongoing,
    ensure_window,
    transition,
)
from votely.models.candidate_model import CandidateCreate, CandidateUpdate
from votely.models.election_model import ElectionCreate, ElectionUpdate
from votely.models.user_model import UserRegister, UserUpdate
from votely.security import hash_password, verify_password
from votely.utils import as_utc, parse_object_id

logger = logging.getLogger(__name__)


# --- Users ---

async def create_user(db, data: UserRegister, now: datetime) -> dict:
    user = {
        "full_name": data.full_name,
        "email": data.email.lower(),
        "password": hash_password(data.password),
        "role": ROLE_VOTER,
        "status": STATUS_ACTIVE,
        "voted_elections": [],
        "created_at": now,
    }
    try:
        result = await db[USERS].insert_one(user)
    except DuplicateKeyError:
        logger.warning(f"Registration refused, email {user['email']} already exists")
        raise DuplicateRecordError("User already exists")
    user["_id"] = result.inserted_id
    logger.info(f"User {user['_id']} registered")
    return user


async def login_user(db, email: str, password: str) -> dict:
    user = await db[USERS].find_one({"email": email.lower()})
    if not user or not verify_password(password, user["password"]):
        raise AuthenticationError("Invalid email or password")
    if user.get("status") != STATUS_ACTIVE:
        raise AuthorizationError("Account is inactive")
    return user


async def get_user(db, user_id) -> dict:
    user = await db[USERS].find_one({"_id": parse_object_id(user_id, "user")})
    if not user:
        raise NotFoundError("User not found")
    return user


async def list_users(db) -> List[dict]:
    return [u async for u in db[USERS].find({}, sort=[("created_at", DESCENDING)])]


async def update_user(db, user_id, data: UserUpdate) -> dict:
    changes = data.model_dump(exclude_none=True)
    if not changes:
        raise ValidationError("Nothing to update")
    user_oid = parse_object_id(user_id, "user")
    result = await db[USERS].update_one({"_id": user_oid}, {"$set": changes})
    if result.matched_count == 0:
        raise NotFoundError("User not found")
    logger.info(f"User {user_oid} updated: {changes}")
    return await get_user(db, user_oid)


# --- Elections ---

async def create_election(db, data: ElectionCreate, creator_id, now: datetime) -> dict:
    ensure_window(data.start_date, data.end_date)
    election = {
        "title": data.title,
        "description": data.description,
        "start_date": as_utc(data.start_date),
        "end_date": as_utc(data.end_date),
        "status": None,
        "status_basis": None,
        "created_by": parse_object_id(creator_id, "user"),
        "candidates": [],
        "created_at": now,
        "updated_at": now,
    }
    result = await db[ELECTIONS].insert_one(election)
    election["_id"] = result.inserted_id
    logger.info(f"Election {election['_id']} created by {creator_id}")
    return election


async def get_election(db, election_id) -> dict:
    election = await db[ELECTIONS].find_one({"_id": parse_object_id(election_id, "election")})
    if not election:
        raise NotFoundError("Election not found")
    return election


async def list_elections(db) -> List[dict]:
    return [e async for e in db[ELECTIONS].find({}, sort=[("created_at", DESCENDING)])]


def ensure_owner_or_admin(election: dict, user: dict) -> None:
    if user.get("role") != ROLE_ADMIN and election.get("created_by") != user["_id"]:
        raise AuthorizationError("Not authorized to access this resource")


async def update_election(db, election_id, data: ElectionUpdate, user: dict, now: datetime) -> dict:
    election = await get_election(db, election_id)
    ensure_owner_or_admin(election, user)

    changes = {}
    if data.title:
        changes["title"] = data.title
    if data.description is not None:
        changes["description"] = data.description

    if data.start_date or data.end_date:
        ensure_dates_mutable(election, now)
        start = as_utc(data.start_date) if data.start_date else as_utc(election["start_date"])
        end = as_utc(data.end_date) if data.end_date else as_utc(election["end_date"])
        ensure_window(start, end)
        changes["start_date"] = start
        changes["end_date"] = end

    if data.status:
        # Evaluated against the window as it will be stored
        candidate_view = {**election, **changes}
        changes.update(transition(candidate_view, data.status, user.get("role") == ROLE_ADMIN, now))

    changes["updated_at"] = now
    await db[ELECTIONS].update_one({"_id": election["_id"]}, {"$set": changes})
    logger.info(f"Election {election['_id']} updated: {sorted(changes)}")
    return await get_election(db, election["_id"])


async def delete_election(db, ledger, election_id, user: dict) -> None:
    """
    Remove an election and its candidates, refusing while any vote references it.

    Candidates are removed one by one so that a cast which read the election
    before it disappeared fails its tally update and is rolled back by the
    ledger. Votes that did land are caught by the final count, which puts the
    election and its candidates back.
    """
    election = await get_election(db, election_id)
    ensure_owner_or_admin(election, user)
    ensure_no_votes(await ledger.count_for_election(election["_id"]), "an election")

    await db[ELECTIONS].delete_one({"_id": election["_id"]})
    removed = []
    while True:
        candidate = await db[CANDIDATES].find_one_and_delete({"election_id": election["_id"]})
        if candidate is None:
            break
        removed.append(candidate)

    late_votes = await ledger.count_for_election(election["_id"])
    if late_votes:
        logger.warning(f"Election {election['_id']} received {late_votes} vote(s) while being deleted, restoring")
        await db[ELECTIONS].insert_one(election)
        if removed:
            await db[CANDIDATES].insert_many(removed)
        ensure_no_votes(late_votes, "an election")
    logger.info(f"Election {election['_id']} deleted")


# --- Candidates ---

async def create_candidate(db, data: CandidateCreate, now: datetime) -> dict:
    election = await get_election(db, data.election_id)
    ensure_ongoing(election, now)

    candidate = {
        "full_name": data.full_name,
        "description": data.description,
        "election_id": election["_id"],
        "votes_count": 0,
        "created_at": now,
    }
    result = await db[CANDIDATES].insert_one(candidate)
    candidate["_id"] = result.inserted_id
    await db[ELECTIONS].update_one({"_id": election["_id"]}, {"$push": {"candidates": candidate["_id"]}})
    logger.info(f"Candidate {candidate['_id']} added to election {election['_id']}")
    return candidate


async def get_candidate(db, candidate_id) -> dict:
    candidate = await db[CANDIDATES].find_one({"_id": parse_object_id(candidate_id, "candidate")})
    if not candidate:
        raise NotFoundError("Candidate not found")
    return candidate


async def list_candidates(db, election_id: Optional[str] = None) -> List[dict]:
    query = {}
    if election_id is not None:
        query["election_id"] = parse_object_id(election_id, "election")
    return [c async for c in db[CANDIDATES].find(query, sort=[("created_at", DESCENDING)])]


async def update_candidate(db, candidate_id, data: CandidateUpdate, now: datetime) -> dict:
    candidate = await get_candidate(db, candidate_id)
    election = await get_election(db, candidate["election_id"])
    if effective_status(election, now) == ENDED:
        raise ConflictError("Cannot update candidates of an ended election")

    # votes_count and election_id are never touched here
    changes = {}
    if data.full_name:
        changes["full_name"] = data.full_name
    if data.description is not None:
        changes["description"] = data.description
    if changes:
        await db[CANDIDATES].update_one({"_id": candidate["_id"]}, {"$set": changes})
    return await get_candidate(db, candidate["_id"])


async def delete_candidate(db, ledger, candidate_id) -> None:
    candidate = await get_candidate(db, candidate_id)
    ensure_no_votes(await ledger.count_for_candidate(candidate["_id"]), "a candidate")

    # A vote whose tally update lands after this delete is rolled back by the ledger
    deleted = await db[CANDIDATES].find_one_and_delete({"_id": candidate["_id"], "votes_count": 0})
    if deleted is None:
        # votes_count moved off zero since the count above
        raise ConflictError("Cannot delete a candidate that has votes")

    await db[ELECTIONS].update_one(
        {"_id": candidate["election_id"]}, {"$pull": {"candidates": candidate["_id"]}}
    )
    logger.info(f"Candidate {candidate['_id']} deleted")
