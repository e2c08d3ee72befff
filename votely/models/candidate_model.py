from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from votely.utils import id_str


class CandidateCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., min_length=1, alias="fullName")
    description: Optional[str] = None
    election_id: str = Field(..., alias="electionId")


class CandidateUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: Optional[str] = Field(None, min_length=1, alias="fullName")
    description: Optional[str] = None


def candidate_out(doc: dict) -> dict:
    return {
        "id": id_str(doc["_id"]),
        "fullName": doc.get("full_name"),
        "description": doc.get("description"),
        "electionId": id_str(doc.get("election_id")),
        "votesCount": doc.get("votes_count", 0),
        "createdAt": doc.get("created_at"),
    }
