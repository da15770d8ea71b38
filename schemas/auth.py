from pydantic import BaseModel


class LoginRequest(BaseModel):
    username: str
    password: str


class LoginSuccessResponse(BaseModel):
    id: str
    username: str
    is_active: bool
    is_admin: bool
    token: str


class MeResponse(BaseModel):
    id: str
    username: str
    email: str | None = None
    full_name: str | None = None
    is_admin: bool


class LogoutSuccessResponse(BaseModel):
    message: str
