"""Auth routes: login and me."""

from fastapi import APIRouter, Depends, HTTPException, Request, status

from leadflow.auth import AuthFailure, create_token, get_current_user
from leadflow.schemas import LoginRequest

router = APIRouter()


@router.post("/login")
async def login(req: LoginRequest, request: Request):
    config = request.app.state.config
    try:
        role = request.app.state.authenticator.authenticate(req.username, req.password)
    except AuthFailure:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")

    token = create_token(req.username, role, config.jwt_secret, config.jwt_expire_hours)
    return {"token": token, "username": req.username, "role": role.value}


@router.get("/me")
async def me(current_user: dict = Depends(get_current_user)):
    return {"username": current_user["username"], "role": current_user["role"].value}
