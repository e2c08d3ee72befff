from pydantic import BaseModel, ConfigDict, Field

from votely.utils import id_str


class Vote(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    election_id: str = Field(..., alias="electionId")
    candidate_id: str = Field(..., alias="candidateId")


class ElectionVote(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    candidate_id: str = Field(..., alias="candidateId")


def vote_out(doc: dict) -> dict:
    return {
        "voteId": id_str(doc["_id"]),
        "electionId": id_str(doc.get("election_id")),
        "candidateId": id_str(doc.get("candidate_id")),
        "voterId": id_str(doc.get("voter_id")),
        "votedAt": doc.get("voted_at"),
    }
