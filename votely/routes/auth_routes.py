from fastapi import APIRouter, Depends, status

from votely import crud
from votely.deps import get_clock, get_current_user, get_db
from votely.models.user_model import UserLogin, UserRegister, user_out
from votely.routes import ok
from votely.security import create_access_token

router = APIRouter(prefix="/api/auth", tags=["Auth"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(data: UserRegister, db=Depends(get_db), clock=Depends(get_clock)):
    user = await crud.create_user(db, data, clock())
    return ok("User registered successfully", user_out(user))


@router.post("/login")
async def login(data: UserLogin, db=Depends(get_db)):
    user = await crud.login_user(db, data.email, data.password)
    token = create_access_token({"sub": str(user["_id"]), "role": user["role"]})
    return ok("Login successful", {"accessToken": token, "tokenType": "bearer", "user": user_out(user)})


@router.get("/me")
async def me(current_user: dict = Depends(get_current_user)):
    return ok("User retrieved successfully", user_out(current_user))
