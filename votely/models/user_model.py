from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from votely.config import ROLE_ADMIN, ROLE_VOTER, STATUS_ACTIVE, STATUS_INACTIVE
from votely.utils import id_str


class UserRegister(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field(..., min_length=1, alias="fullName")
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserUpdate(BaseModel):
    role: Optional[str] = Field(None, pattern=f"^({ROLE_ADMIN}|{ROLE_VOTER})$")
    status: Optional[str] = Field(None, pattern=f"^({STATUS_ACTIVE}|{STATUS_INACTIVE})$")


def user_out(doc: dict) -> dict:
    return {
        "id": id_str(doc["_id"]),
        "fullName": doc.get("full_name"),
        "email": doc.get("email"),
        "role": doc.get("role"),
        "status": doc.get("status"),
        "votedElections": [id_str(e) for e in doc.get("voted_elections", [])],
        "createdAt": doc.get("created_at"),
    }
