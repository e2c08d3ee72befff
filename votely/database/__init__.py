from votely.database.connection import (
    CANDIDATES,
    ELECTIONS,
    USERS,
    VOTES,
    create_client,
    ensure_indexes,
)

__all__ = [
    "CANDIDATES",
    "ELECTIONS",
    "USERS",
    "VOTES",
    "create_client",
    "ensure_indexes",
]
