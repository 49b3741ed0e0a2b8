"""Authentication API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Response, status
from sqlalchemy.orm import Session

from pitchflow.api.deps import AUTH_COOKIE, get_db, require_auth
from pitchflow.models.user import User
from pitchflow.schemas.auth import LoginRequest, TokenResponse, UserRead
from pitchflow.services.auth import ACCESS_TOKEN_EXPIRE_HOURS, authenticate_user, create_access_token

router = APIRouter()


@router.post("/login", response_model=TokenResponse)
def login(
    body: LoginRequest,
    response: Response,
    db: Session = Depends(get_db),
) -> TokenResponse:
    """Authenticate and return a JWT; also sets an httponly cookie for browsers."""
    user = authenticate_user(db, body.username, body.password)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid username or password",
        )

    token = create_access_token(data={"sub": user.username})
    response.set_cookie(
        key=AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=60 * 60 * ACCESS_TOKEN_EXPIRE_HOURS,
        path="/",
    )
    return TokenResponse(access_token=token)


@router.post("/logout")
def logout(response: Response) -> dict:
    response.delete_cookie(key=AUTH_COOKIE, path="/")
    return {"detail": "Logged out"}


@router.get("/me", response_model=UserRead)
def me(current_user: User = Depends(require_auth)) -> UserRead:
    return UserRead.model_validate(current_user)
