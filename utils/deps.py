from core.database import SessionLocal
from functools import lru_cache
from typing import Annotated
from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from core.cache import KeyValueCache
from core.config import settings
from core.exceptions import RateLimited
from schemas.auth_schemas import LoginRequest
from services.auth_service import AuthService
from services.rate_limiter import RateLimiter, login_attempts_key
from services.session_manager import SessionManager
from services.wallet_service import WalletService
from utils.logger import get_logger

logger = get_logger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

db_dependency = Annotated[Session, Depends(get_db)]


@lru_cache
def get_cache() -> KeyValueCache:
    return KeyValueCache.from_url(settings.REDIS_URL)

cache_dependency = Annotated[KeyValueCache, Depends(get_cache)]


def get_session_manager(db: db_dependency, cache: cache_dependency) -> SessionManager:
    return SessionManager(db, cache)

session_dependency = Annotated[SessionManager, Depends(get_session_manager)]


def get_auth_service(db: db_dependency, sessions: session_dependency) -> AuthService:
    return AuthService(db, sessions)

auth_service_dependency = Annotated[AuthService, Depends(get_auth_service)]


def get_wallet_service(db: db_dependency) -> WalletService:
    return WalletService(db)

wallet_service_dependency = Annotated[WalletService, Depends(get_wallet_service)]


def login_gate(body: LoginRequest, cache: cache_dependency) -> LoginRequest:
    """
    Refuse a login before any credential check once the member id has
    collected MAX_LOGIN_ATTEMPTS failures inside the lockout window.
    """
    limiter = RateLimiter(cache)
    if limiter.is_blocked(login_attempts_key(body.member_id), settings.MAX_LOGIN_ATTEMPTS):
        logger.warning("Login blocked - too many failed attempts", extra={"member_id": body.member_id})
        raise RateLimited()
    return body

login_dependency = Annotated[LoginRequest, Depends(login_gate)]


oauth2_bearer = OAuth2PasswordBearer(tokenUrl="auth/login")

access_token_dependency = Annotated[str, Depends(oauth2_bearer)]


def get_current_user_id(token: access_token_dependency, sessions: session_dependency) -> int:
    return sessions.authenticate(token)

user_dependency = Annotated[int, Depends(get_current_user_id)]
