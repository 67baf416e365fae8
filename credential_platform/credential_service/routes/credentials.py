"""
Register, login and bearer-token endpoints.
"""
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Request, Response, status
from jwt import InvalidTokenError

from ..schemas import CurrentLogin, LoginReply, LoginRequest, RegisterReply, RegisterRequest
from ..service import MSG_INVALID_CREDENTIALS, MSG_REQUIRED, MSG_USER_EXISTS, CredentialService
from ..store import Deadline
from ..utils.event_logger import client_address, client_user_agent

router = APIRouter(tags=["credentials"])

FAILURE_STATUS = {
    MSG_REQUIRED: status.HTTP_400_BAD_REQUEST,
    MSG_USER_EXISTS: status.HTTP_409_CONFLICT,
    MSG_INVALID_CREDENTIALS: status.HTTP_401_UNAUTHORIZED,
}


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.service


def get_request_deadline(request: Request) -> Deadline:
    return Deadline.after(request.app.state.settings.REQUEST_TIMEOUT_SECONDS)


def get_current_login(
    request: Request,
    authorization: Optional[str] = Header(default=None, alias="Authorization"),
) -> str:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated")
    token = authorization.split(" ", 1)[1].strip()
    try:
        claims = request.app.state.token_issuer.verify(token)
    except InvalidTokenError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token") from exc
    return claims["sub"]


@router.post("/register", response_model=RegisterReply)
def register(
    payload: RegisterRequest,
    response: Response,
    service: CredentialService = Depends(get_credential_service),
    deadline: Deadline = Depends(get_request_deadline),
):
    result = service.register(payload.login, payload.password, deadline=deadline)
    if not result.success:
        response.status_code = FAILURE_STATUS.get(result.message, status.HTTP_400_BAD_REQUEST)
    return RegisterReply(success=result.success, message=result.message)


@router.post("/login", response_model=LoginReply)
def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    service: CredentialService = Depends(get_credential_service),
    deadline: Deadline = Depends(get_request_deadline),
):
    result = service.login(
        payload.login,
        payload.password,
        remote_ip=client_address(request),
        user_agent=client_user_agent(request),
        deadline=deadline,
    )
    if not result.success:
        response.status_code = FAILURE_STATUS.get(result.message, status.HTTP_401_UNAUTHORIZED)
    return LoginReply(
        success=result.success,
        message=result.message,
        access_token=result.access_token,
        token_type=result.token_type,
        expires_in_minutes=result.expires_in_minutes,
    )


@router.get("/me", response_model=CurrentLogin)
def me(login: str = Depends(get_current_login)):
    """
    Return the subject of a valid bearer token.
    Requires JWT authentication.
    """
    return CurrentLogin(login=login)
