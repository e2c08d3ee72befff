from fastapi import APIRouter, Depends, status

from votely import crud
from votely.deps import get_clock, get_current_user, get_db, get_ledger, get_tally, require_admin
from votely.models.election_model import ElectionCreate, ElectionUpdate, election_out
from votely.models.candidate_model import candidate_out
from votely.models.vote_model import ElectionVote, vote_out
from votely.routes import ok

router = APIRouter(prefix="/api/elections", tags=["Election"])


@router.get("")
async def get_all_elections(db=Depends(get_db), clock=Depends(get_clock), _=Depends(get_current_user)):
    now = clock()
    elections = []
    for election in await crud.list_elections(db):
        candidates = await crud.list_candidates(db, election["_id"])
        elections.append(election_out(election, now, candidates))
    return ok("Elections retrieved successfully", elections)


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_election(data: ElectionCreate, db=Depends(get_db), clock=Depends(get_clock),
                          admin: dict = Depends(require_admin)):
    now = clock()
    election = await crud.create_election(db, data, admin["_id"], now)
    return ok("Election created successfully", election_out(election, now))


@router.get("/{election_id}")
async def get_election(election_id: str, db=Depends(get_db), clock=Depends(get_clock),
                       _=Depends(get_current_user)):
    election = await crud.get_election(db, election_id)
    candidates = await crud.list_candidates(db, election["_id"])
    return ok("Election retrieved successfully", election_out(election, clock(), candidates))


@router.put("/{election_id}")
async def update_election(election_id: str, data: ElectionUpdate, db=Depends(get_db), clock=Depends(get_clock),
                          current_user: dict = Depends(get_current_user)):
    now = clock()
    election = await crud.update_election(db, election_id, data, current_user, now)
    return ok("Election updated successfully", election_out(election, now))


@router.delete("/{election_id}")
async def delete_election(election_id: str, db=Depends(get_db), ledger=Depends(get_ledger),
                          current_user: dict = Depends(get_current_user)):
    await crud.delete_election(db, ledger, election_id, current_user)
    return ok("Election deleted successfully")


@router.get("/{election_id}/candidates")
async def get_election_candidates(election_id: str, db=Depends(get_db)):
    election = await crud.get_election(db, election_id)
    candidates = await crud.list_candidates(db, election["_id"])
    return ok("Candidates retrieved successfully", [candidate_out(c) for c in candidates])


@router.post("/{election_id}/vote", status_code=status.HTTP_201_CREATED)
async def vote_in_election(election_id: str, data: ElectionVote, ledger=Depends(get_ledger),
                           current_user: dict = Depends(get_current_user)):
    vote = await ledger.cast_vote(current_user["_id"], election_id, data.candidate_id)
    return ok("Vote cast successfully", vote_out(vote))


@router.get("/{election_id}/results")
async def get_election_results(election_id: str, tally=Depends(get_tally),
                               current_user: dict = Depends(get_current_user)):
    results = await tally.get_results(election_id, current_user)
    return ok("Election results retrieved successfully", results)


@router.get("/{election_id}/integrity", dependencies=[Depends(require_admin)])
async def verify_election_integrity(election_id: str, tally=Depends(get_tally)):
    report = await tally.verify_integrity(election_id)
    return ok("Election integrity verified", report)
