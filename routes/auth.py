from fastapi import APIRouter, Depends
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
from core.responses import (
    common_response,
    Ok,
    BadRequest,
    Unauthorized,
)
from core.security import (
    generate_token_from_user,
    get_user_from_token,
    invalidate_token,
    validated_password,
    oauth2_scheme,
)
from models import get_db_sync
from models.User import User
from schemas.common import (
    BadRequestResponse,
    InternalServerErrorResponse,
    UnauthorizedResponse,
)
from schemas.auth import (
    LoginRequest,
    LoginSuccessResponse,
    LogoutSuccessResponse,
    MeResponse,
)
from repository import user as userRepo

router = APIRouter(prefix="/auth", tags=["Auth"])


def authenticate(db: Session, username: str, password: str) -> User | None:
    user = userRepo.get_user_by_username(db=db, username=username)
    if user is None or user.password is None:
        return None
    if not user.is_active:
        return None
    if not validated_password(user.password, password):
        return None
    return user


@router.post("/token/")
async def swagger_form_token(
    form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db_sync)
):
    user = authenticate(db=db, username=form_data.username, password=form_data.password)
    if user is None:
        return common_response(BadRequest(message="Invalid Credentials"))

    token = generate_token_from_user(db=db, user=user)
    return {"access_token": token, "token_type": "bearer"}


@router.post(
    "/login/",
    responses={
        "200": {"model": LoginSuccessResponse},
        "400": {"model": BadRequestResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def login(request: LoginRequest, db: Session = Depends(get_db_sync)):
    user = authenticate(db=db, username=request.username, password=request.password)
    if user is None:
        return common_response(BadRequest(message="Invalid Credentials"))

    token = generate_token_from_user(db=db, user=user)
    return common_response(
        Ok(
            data=LoginSuccessResponse(
                id=str(user.id),
                username=user.username,
                is_active=user.is_active,
                is_admin=user.is_admin,
                token=token,
            ).model_dump(mode="json")
        )
    )


@router.get(
    "/me/",
    responses={
        "200": {"model": MeResponse},
        "401": {"model": UnauthorizedResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def me(db: Session = Depends(get_db_sync), token: str = Depends(oauth2_scheme)):
    user = get_user_from_token(db=db, token=token)
    if user is None:
        return common_response(Unauthorized(message="Invalid Credentials"))

    return common_response(
        Ok(
            data=MeResponse(
                id=str(user.id),
                username=user.username,
                email=user.email,
                full_name=user.full_name,
                is_admin=user.is_admin,
            ).model_dump(mode="json")
        )
    )


@router.post(
    "/logout/",
    responses={
        "200": {"model": LogoutSuccessResponse},
        "401": {"model": UnauthorizedResponse},
        "500": {"model": InternalServerErrorResponse},
    },
)
async def logout(
    db: Session = Depends(get_db_sync), token: str = Depends(oauth2_scheme)
):
    user = get_user_from_token(db=db, token=token)
    if user is None:
        return common_response(Unauthorized(message="Invalid Credentials"))

    invalidate_token(db=db, token=token)
    return common_response(Ok(data={"message": "logout successfully"}))
