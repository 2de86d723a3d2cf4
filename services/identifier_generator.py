import secrets
import string
from typing import Callable

from core.exceptions import ExhaustedRetries
from utils.logger import get_logger

logger = get_logger(__name__)

DIGITS = string.digits
ALPHANUMERIC = string.ascii_letters + string.digits

DEFAULT_MAX_ATTEMPTS = 100


class IdentifierGenerator:
    """
    Bounded-retry generator of unique random values.

    One instance serves member ids, wallet identifiers, token codes and
    one-time codes; only the uniqueness probe changes between call sites.
    """

    def __init__(self, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._random = secrets.SystemRandom()

    def random_value(self, length: int, only_digits: bool = False) -> str:
        """
        Draw one candidate of `length` characters.

        Digit-only values never start with 0 so their integer form keeps
        the requested width.
        """
        if length < 1:
            raise ValueError("length must be at least 1")

        if only_digits:
            head = self._random.choice(DIGITS[1:])
            tail = "".join(self._random.choice(DIGITS) for _ in range(length - 1))
            return head + tail

        return "".join(self._random.choice(ALPHANUMERIC) for _ in range(length))

    def generate(self, length: int, is_taken: Callable[[str], bool], only_digits: bool = False) -> str:
        """
        Return a random value the probe reports as free.

        Args:
            length: Number of characters
            is_taken: Uniqueness probe, called once per candidate
            only_digits: Restrict the alphabet to 0-9

        Raises:
            ExhaustedRetries: Every one of `max_attempts` candidates was taken
        """
        for _ in range(self.max_attempts):
            candidate = self.random_value(length, only_digits)
            if not is_taken(candidate):
                return candidate

        logger.error(
            "Identifier generation exhausted its retries",
            extra={"length": length, "only_digits": only_digits, "attempts": self.max_attempts}
        )
        raise ExhaustedRetries()
