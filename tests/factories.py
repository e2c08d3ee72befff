from datetime import datetime, timedelta, timezone

from bson import ObjectId
from mongomock_motor import AsyncMongoMockClient

from votely.config import ROLE_ADMIN, ROLE_VOTER, STATUS_ACTIVE
from votely.database import CANDIDATES, ELECTIONS, USERS, ensure_indexes
from votely.security import create_access_token

T0 = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = T0 + timedelta(minutes=1)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


async def make_db():
    db = AsyncMongoMockClient()[f"votely_test_{ObjectId()}"]
    await ensure_indexes(db)
    return db


async def make_user(db, role: str = ROLE_VOTER, status: str = STATUS_ACTIVE, email: str = None) -> dict:
    user = {
        "full_name": f"{role} user",
        "email": email or f"{ObjectId()}@example.com",
        "password": "not-a-real-hash",
        "role": role,
        "status": status,
        "voted_elections": [],
        "created_at": T0,
    }
    result = await db[USERS].insert_one(user)
    user["_id"] = result.inserted_id
    return user


async def make_admin(db) -> dict:
    return await make_user(db, role=ROLE_ADMIN)


async def make_election(db, start: datetime = T0, hours: int = 1, created_by=None, **extra) -> dict:
    election = {
        "title": "Student Council",
        "description": None,
        "start_date": start,
        "end_date": start + timedelta(hours=hours),
        "status": None,
        "status_basis": None,
        "created_by": created_by or ObjectId(),
        "candidates": [],
        "created_at": T0,
        "updated_at": T0,
    }
    election.update(extra)
    result = await db[ELECTIONS].insert_one(election)
    election["_id"] = result.inserted_id
    return election


async def make_candidate(db, election: dict, name: str = "Alice", votes_count: int = 0) -> dict:
    candidate = {
        "full_name": name,
        "description": None,
        "election_id": election["_id"],
        "votes_count": votes_count,
        "created_at": T0,
    }
    result = await db[CANDIDATES].insert_one(candidate)
    candidate["_id"] = result.inserted_id
    await db[ELECTIONS].update_one({"_id": election["_id"]}, {"$push": {"candidates": candidate["_id"]}})
    return candidate


def auth_header(user: dict) -> dict:
    token = create_access_token({"sub": str(user["_id"]), "role": user["role"]})
    return {"Authorization": f"Bearer {token}"}
