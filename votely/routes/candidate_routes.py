from typing import Optional

from fastapi import APIRouter, Depends, status

from votely import crud
from votely.deps import get_clock, get_db, get_ledger, require_admin
from votely.models.candidate_model import CandidateCreate, CandidateUpdate, candidate_out
from votely.routes import ok

router = APIRouter(prefix="/api/candidates", tags=["Candidate"])


@router.get("")
async def get_all_candidates(election_id: Optional[str] = None, db=Depends(get_db)):
    candidates = await crud.list_candidates(db, election_id)
    return ok("Candidates retrieved successfully", [candidate_out(c) for c in candidates])


@router.get("/{candidate_id}")
async def get_candidate(candidate_id: str, db=Depends(get_db)):
    return ok("Candidate retrieved successfully", candidate_out(await crud.get_candidate(db, candidate_id)))


@router.post("", status_code=status.HTTP_201_CREATED, dependencies=[Depends(require_admin)])
async def create_candidate(data: CandidateCreate, db=Depends(get_db), clock=Depends(get_clock)):
    candidate = await crud.create_candidate(db, data, clock())
    return ok("Candidate created successfully", candidate_out(candidate))


@router.put("/{candidate_id}", dependencies=[Depends(require_admin)])
async def update_candidate(candidate_id: str, data: CandidateUpdate, db=Depends(get_db), clock=Depends(get_clock)):
    candidate = await crud.update_candidate(db, candidate_id, data, clock())
    return ok("Candidate updated successfully", candidate_out(candidate))


@router.delete("/{candidate_id}", dependencies=[Depends(require_admin)])
async def delete_candidate(candidate_id: str, db=Depends(get_db), ledger=Depends(get_ledger)):
    await crud.delete_candidate(db, ledger, candidate_id)
    return ok("Candidate deleted successfully")
