from fastapi import APIRouter, BackgroundTasks, Request
from starlette import status
from schemas.auth_schemas import (Token, SignUpRequest, SignUpResponse, ConfirmEmailRequest,
    RefreshTokenRequest, RestorePasswordInitiateRequest, RestorePasswordConfirmCodeRequest,
    RestorePasswordConfirmCodeResponse, RestorePasswordCompleteRequest)
from utils.deps import (access_token_dependency, auth_service_dependency, login_dependency,
    session_dependency)
from middleware.rate_limiter import limiter
from utils.logger import get_logger

# Setup logger
logger = get_logger(__name__)


router = APIRouter(
    prefix="/auth",
    tags=["auth"]
)


@router.post("/sign-up", response_model=SignUpResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("3/minute")
def sign_up(request: Request, body: SignUpRequest, auth: auth_service_dependency, bg: BackgroundTasks):
    user = auth.sign_up(body, bg)
    return {"member_id": user.member_id}


@router.post("/confirm-email", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
def confirm_email(request: Request, body: ConfirmEmailRequest, auth: auth_service_dependency):
    auth.confirm_email(body.code)
    return {"message": "Email confirmed successfully"}


@router.post("/login", response_model=Token)
@limiter.limit("5/minute")
def login(request: Request, body: login_dependency, sessions: session_dependency):
    """
    Exchange member id and password for an access/refresh token pair.

    The login gate has already refused member ids locked out by failed attempts.
    """
    client_ip = request.client.host if request.client else None
    return sessions.login(body.member_id, body.password, client_ip)


@router.post("/refresh", response_model=Token)
@limiter.limit("10/minute")
def refresh_token(request: Request, body: RefreshTokenRequest, sessions: session_dependency):
    """
    Rotate the token pair. The presented refresh token becomes unusable.
    """
    return sessions.refresh(body.refresh_token)


@router.post("/logout", status_code=status.HTTP_200_OK)
@limiter.limit("10/minute")
def logout(request: Request, token: access_token_dependency, sessions: session_dependency,
           all_devices: bool = False):
    """
    Revoke the session of the bearer access token, or every session of its owner.
    """
    sessions.logout(token, all_devices)
    return {"message": "Logged out successfully"}


@router.post("/restore-password/initiate", status_code=status.HTTP_200_OK)
@limiter.limit("3/minute")
def restore_password_initiate(request: Request, body: RestorePasswordInitiateRequest,
                              auth: auth_service_dependency, bg: BackgroundTasks):
    auth.restore_password_initiate(body.email, body.member_id, bg)
    return {"message": "If the account exists, a code has been sent."}


@router.post("/restore-password/confirm-code", response_model=RestorePasswordConfirmCodeResponse)
@limiter.limit("5/minute")
def restore_password_confirm_code(request: Request, body: RestorePasswordConfirmCodeRequest,
                                  auth: auth_service_dependency):
    return {"code": auth.restore_password_confirm_code(body.code)}


@router.post("/restore-password/complete", status_code=status.HTTP_200_OK)
@limiter.limit("5/minute")
def restore_password_complete(request: Request, body: RestorePasswordCompleteRequest,
                              auth: auth_service_dependency):
    auth.restore_password_complete(body.code, body.password)
    return {"message": "Password updated successfully. Please login again."}
