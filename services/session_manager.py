from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.cache import KeyValueCache
from core.config import settings
from core.exceptions import InvalidCredentials, InvalidToken, StorageUnavailable
from models.user_logs import LogTemplate, UserAction
from models.user_tokens import UserToken, UserTokenType
from models.users import User, UserStatus
from services.activity_logger import UserActivityLogger
from services.identifier_generator import IdentifierGenerator
from services.rate_limiter import RateLimiter, login_attempts_key
from services.token_codec import TokenCodec, TokenDecodeError, TokenPayload
from services.token_store import TokenStore
from utils.clock import Clock, as_utc, utcnow
from utils.hashing import dummy_verify, verify_password
from utils.logger import get_logger

logger = get_logger(__name__)


def access_marker_key(user_id: int, code: str) -> str:
    return f"access_token:{user_id}:{code}"


class SessionManager:
    """
    Issues, rotates and revokes access/refresh token pairs.

    Every token check failure surfaces as the same InvalidToken and every
    login failure as the same InvalidCredentials; the internal reason is
    only logged.
    """

    def __init__(
        self,
        db: Session,
        cache: KeyValueCache,
        *,
        store: Optional[TokenStore] = None,
        codec: Optional[TokenCodec] = None,
        generator: Optional[IdentifierGenerator] = None,
        rate_limiter: Optional[RateLimiter] = None,
        activity: Optional[UserActivityLogger] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.cache = cache
        self.clock = clock
        self.store = store or TokenStore(db)
        self.codec = codec or TokenCodec(settings.SECRET_KEY, settings.ALGORITHM, clock=clock)
        self.generator = generator or IdentifierGenerator(settings.IDENTIFIER_MAX_ATTEMPTS)
        self.rate_limiter = rate_limiter or RateLimiter(cache)
        self.activity = activity or UserActivityLogger(db)

    # Login

    def login(self, member_id: int, password: str, client_ip: Optional[str] = None) -> dict:
        """
        Check credentials and issue a fresh token pair.

        Raises:
            InvalidCredentials: Unknown member id, wrong password or an
                account that is not active
        """
        user = self._find_user(member_id)

        if user is None:
            dummy_verify()
            raise self._login_failure(member_id, "unknown member id", client_ip)

        if not verify_password(password, user.hashed_password):
            raise self._login_failure(member_id, "wrong password", client_ip)

        if user.status != UserStatus.ACTIVE:
            logger.warning(
                "Login refused - account not active",
                extra={"user_id": user.id, "status": user.status.value, "client_ip": client_ip}
            )
            raise InvalidCredentials()

        self.rate_limiter.reset(login_attempts_key(member_id))
        tokens = self._issue_pair(user.id)
        self.activity.write(user.id, UserAction.LOGIN, LogTemplate.SIGNIN, client_ip)

        logger.info("User logged in", extra={"user_id": user.id, "client_ip": client_ip})

        return tokens

    def _find_user(self, member_id: int) -> Optional[User]:
        try:
            return self.db.query(User).filter(User.member_id == member_id).one_or_none()
        except SQLAlchemyError as e:
            raise StorageUnavailable() from e

    def _login_failure(self, member_id: int, reason: str, client_ip: Optional[str]) -> InvalidCredentials:
        self.rate_limiter.record_failure(
            login_attempts_key(member_id),
            settings.MAX_LOGIN_ATTEMPTS_EXPIRATION
        )
        logger.warning(
            f"Login failed - {reason}",
            extra={"member_id": member_id, "client_ip": client_ip}
        )
        return InvalidCredentials()

    # Refresh

    def refresh(self, refresh_token: str) -> dict:
        """
        Rotate a pair: the presented refresh token and its access token are
        deleted and a new pair is issued for the same user.

        Raises:
            InvalidToken: The token is not a live refresh token, including
                when a concurrent refresh already consumed it
        """
        _, record = self._resolve(refresh_token, UserTokenType.REFRESH)
        refresh_id, refresh_code, user_id = record.id, record.code, record.user_id
        old_access = self.store.find_related(refresh_id)
        old_access_code = old_access.code if old_access is not None else None

        codes = self._new_codes()
        new_pair = self.store.rotate_pair(refresh_id, refresh_code, user_id, *codes)
        if new_pair is None:
            logger.warning("Refresh token already consumed", extra={"user_id": user_id})
            raise InvalidToken()

        if old_access_code is not None:
            self.cache.delete(access_marker_key(user_id, old_access_code))

        logger.info("Token pair rotated", extra={"user_id": user_id})

        return self._sign_pair(user_id, *codes)

    # Logout

    def logout(self, access_token: str, all_devices: bool = False) -> None:
        """
        Revoke the session of `access_token`, or every session of its owner.

        Raises:
            InvalidToken: The token is not a live access token
        """
        payload, record = self._resolve(access_token, UserTokenType.ACCESS)
        user_id = record.user_id

        if all_devices:
            removed = self.revoke_user_sessions(user_id)
            self.activity.write(user_id, UserAction.LOGOUT, LogTemplate.PLAIN, "all_devices")
            logger.info("User logged out from all devices", extra={"user_id": user_id, "tokens_removed": removed})
            return

        related_id = record.related_token_id
        self.store.delete_pair(related_id if related_id is not None else record.id)
        self.cache.delete(access_marker_key(user_id, payload.code))
        self.activity.write(user_id, UserAction.LOGOUT, LogTemplate.PLAIN)
        logger.info("User logged out", extra={"user_id": user_id})

    def revoke_user_sessions(self, user_id: int) -> int:
        """Delete every token of the user and drop their validity markers."""
        codes = [token.code for token in self.store.find_access_tokens(user_id)]
        removed = self.store.delete_all_for_user(user_id)
        self.cache.delete(*[access_marker_key(user_id, code) for code in codes])
        return removed

    # Access token checks

    def authenticate(self, access_token: str) -> int:
        """
        Verify an access token for a protected endpoint.

        A cached validity marker short-cuts the database lookup; otherwise
        the record is resolved and the marker written. The record is checked
        again once the marker exists, so a logout or refresh committed in
        between never leaves a marker behind for a revoked token.

        Returns:
            The owning user id
        """
        payload = self._decode(access_token, UserTokenType.ACCESS)
        marker = access_marker_key(payload.user_id, payload.code)

        if self.cache.exists(marker):
            return payload.user_id

        _, record = self._resolve_payload(payload, UserTokenType.ACCESS)

        remaining = (as_utc(record.expire_at) - self.clock()).total_seconds()
        ttl = int(min(remaining, settings.ACCESS_TOKEN_CACHE_SECONDS))
        if ttl > 0:
            self.cache.set(marker, "1", ttl)
            if not self.store.code_exists(payload.code, UserTokenType.ACCESS):
                self.cache.delete(marker)
                logger.warning("Token rejected - revoked during check", extra={"user_id": payload.user_id})
                raise InvalidToken()

        return record.user_id

    def _decode(self, signed: str, expected_type: UserTokenType) -> TokenPayload:
        try:
            payload = self.codec.verify(signed)
        except TokenDecodeError as e:
            logger.warning("Token rejected", extra={"reason": type(e).__name__})
            raise InvalidToken() from e

        if payload.type != expected_type:
            logger.warning(
                "Token rejected - wrong type",
                extra={"expected": expected_type.value, "actual": payload.type.value}
            )
            raise InvalidToken()

        return payload

    def _resolve(self, signed: str, expected_type: UserTokenType) -> tuple[TokenPayload, UserToken]:
        return self._resolve_payload(self._decode(signed, expected_type), expected_type)

    def _resolve_payload(self, payload: TokenPayload, expected_type: UserTokenType) -> tuple[TokenPayload, UserToken]:
        record = self.store.find_by_code(payload.code, expected_type)

        if record is None:
            reason = "not found"
        elif record.user_id != payload.user_id:
            reason = "user mismatch"
        elif as_utc(record.expire_at) <= self.clock():
            reason = "expired"
        else:
            return payload, record

        logger.warning("Token rejected - record " + reason, extra={"user_id": payload.user_id})
        raise InvalidToken()

    # Issuance

    def _new_codes(self) -> tuple:
        now = self.clock()
        access_code = self.generator.generate(
            settings.TOKEN_CODE_LENGTH,
            lambda code: self.store.code_exists(code, UserTokenType.ACCESS)
        )
        refresh_code = self.generator.generate(
            settings.TOKEN_CODE_LENGTH,
            lambda code: self.store.code_exists(code, UserTokenType.REFRESH)
        )
        access_expire_at = now + timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        refresh_expire_at = now + timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
        return access_code, access_expire_at, refresh_code, refresh_expire_at

    def _issue_pair(self, user_id: int) -> dict:
        codes = self._new_codes()
        self.store.create_pair(user_id, *codes)
        return self._sign_pair(user_id, *codes)

    def _sign_pair(self, user_id, access_code, access_expire_at, refresh_code, refresh_expire_at) -> dict:
        access_token = self.codec.sign(TokenPayload(user_id, access_code, UserTokenType.ACCESS, access_expire_at))
        refresh_token = self.codec.sign(TokenPayload(user_id, refresh_code, UserTokenType.REFRESH, refresh_expire_at))
        return {
            "access_token": access_token,
            "refresh_token": refresh_token,
            "token_type": "bearer"
        }
