from fastapi import APIRouter, Depends, status

from votely.config import ROLE_ADMIN
from votely.deps import get_current_user, get_ledger, require_admin
from votely.errors import AuthorizationError
from votely.models.vote_model import Vote, vote_out
from votely.routes import ok

vote_router = APIRouter(prefix="/api/votes", tags=["Vote"])


@vote_router.get("", dependencies=[Depends(require_admin)])
async def get_all_votes(ledger=Depends(get_ledger)):
    votes = await ledger.list_votes()
    return ok("Votes retrieved successfully", [vote_out(v) for v in votes])


@vote_router.get("/me")
async def get_user_votes(ledger=Depends(get_ledger), current_user: dict = Depends(get_current_user)):
    votes = await ledger.votes_for_voter(current_user["_id"])
    return ok("User votes retrieved successfully", [vote_out(v) for v in votes])


@vote_router.get("/check/{election_id}")
async def check_vote(election_id: str, ledger=Depends(get_ledger), current_user: dict = Depends(get_current_user)):
    """Tell the current user whether they can still vote in an election."""
    voted = await ledger.has_voted(current_user["_id"], election_id)
    if voted:
        return ok("You have already voted in this election", {"status": "already_voted"})
    return ok("Voter can proceed to vote", {"status": "not_voted"})


@vote_router.get("/{vote_id}")
async def get_vote(vote_id: str, ledger=Depends(get_ledger), current_user: dict = Depends(get_current_user)):
    vote = await ledger.get_vote(vote_id)
    if current_user.get("role") != ROLE_ADMIN and vote["voter_id"] != current_user["_id"]:
        raise AuthorizationError("Not authorized to access this vote")
    return ok("Vote retrieved successfully", vote_out(vote))


@vote_router.post("", status_code=status.HTTP_201_CREATED)
async def cast_vote(vote: Vote, ledger=Depends(get_ledger), current_user: dict = Depends(get_current_user)):
    created = await ledger.cast_vote(current_user["_id"], vote.election_id, vote.candidate_id)
    return ok("Vote cast successfully", vote_out(created))


@vote_router.delete("/{vote_id}")
async def delete_vote(vote_id: str, ledger=Depends(get_ledger), current_user: dict = Depends(get_current_user)):
    await ledger.retract_vote(vote_id, current_user.get("role"))
    return ok("Vote deleted successfully")
