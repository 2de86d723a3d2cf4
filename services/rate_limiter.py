from core.cache import KeyValueCache
from core.exceptions import StorageUnavailable
from utils.logger import get_logger

logger = get_logger(__name__)


def login_attempts_key(member_id) -> str:
    return f"login_attempts:{member_id}"


class RateLimiter:
    """
    Failed-login counters kept in the cache.

    Recording is best-effort (a cache outage never breaks the login flow),
    the lockout check fails closed (a cache outage counts as blocked).
    """

    def __init__(self, cache: KeyValueCache):
        self.cache = cache

    def record_failure(self, key: str, ttl_seconds: int) -> None:
        """Increment the counter and push its expiry `ttl_seconds` into the future."""
        try:
            count = self.cache.increment_with_expiry(key, ttl_seconds)
        except StorageUnavailable:
            logger.warning("Could not record failed login attempt", extra={"key": key})
            return

        logger.debug("Failed login attempt recorded", extra={"key": key, "count": count})

    def is_blocked(self, key: str, threshold: int) -> bool:
        try:
            count = self.cache.get_int(key)
        except StorageUnavailable:
            logger.error("Login attempt counter unreachable, denying login", extra={"key": key})
            return True

        return count >= threshold

    def reset(self, key: str) -> None:
        try:
            self.cache.delete(key)
        except StorageUnavailable:
            logger.warning("Could not reset failed login counter", extra={"key": key})
