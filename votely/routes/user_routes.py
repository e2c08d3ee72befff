from fastapi import APIRouter, Depends

from votely import crud
from votely.deps import get_db, require_admin
from votely.models.user_model import UserUpdate, user_out
from votely.routes import ok

router = APIRouter(prefix="/api/users", tags=["Users"], dependencies=[Depends(require_admin)])


@router.get("")
async def list_users(db=Depends(get_db)):
    users = await crud.list_users(db)
    return ok("Users retrieved successfully", [user_out(u) for u in users])


@router.get("/{user_id}")
async def get_user(user_id: str, db=Depends(get_db)):
    return ok("User retrieved successfully", user_out(await crud.get_user(db, user_id)))


@router.patch("/{user_id}")
async def update_user(user_id: str, data: UserUpdate, db=Depends(get_db)):
    user = await crud.update_user(db, user_id, data)
    return ok("User updated successfully", user_out(user))
