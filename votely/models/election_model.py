from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from votely.lifecycle import ELECTION_STATES, effective_status
from votely.models.candidate_model import candidate_out
from votely.utils import id_str


class ElectionCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: str = Field(..., min_length=1, examples=["Student Council 2026"])
    description: Optional[str] = None
    start_date: datetime = Field(..., alias="startDate")
    end_date: datetime = Field(..., alias="endDate")


class ElectionUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    start_date: Optional[datetime] = Field(None, alias="startDate")
    end_date: Optional[datetime] = Field(None, alias="endDate")
    status: Optional[str] = Field(None, pattern=f"^({'|'.join(ELECTION_STATES)})$")


def election_out(doc: dict, now: datetime, candidates: Optional[List[dict]] = None) -> dict:
    data = {
        "id": id_str(doc["_id"]),
        "title": doc.get("title"),
        "description": doc.get("description"),
        "startDate": doc.get("start_date"),
        "endDate": doc.get("end_date"),
        "status": effective_status(doc, now),
        "createdBy": id_str(doc.get("created_by")),
        "candidates": [id_str(c) for c in doc.get("candidates", [])],
        "createdAt": doc.get("created_at"),
    }
    if candidates is not None:
        data["candidates"] = [candidate_out(c) for c in candidates]
    return data
