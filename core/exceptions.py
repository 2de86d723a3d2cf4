"""
Application error taxonomy.

Every error carries the HTTP status it maps to and a generic public message.
Internal reasons (which sub-check failed, driver errors) are logged by the
raising code and never copied into `detail`.
"""

from typing import Optional


class AppError(Exception):
    """Base class for errors the API layer turns into JSON responses."""

    status_code: int = 400
    detail: str = "Bad request"

    def __init__(self, detail: Optional[str] = None):
        if detail is not None:
            self.detail = detail
        super().__init__(self.detail)


class InvalidCredentials(AppError):
    """Unknown member id, wrong password or an account that may not log in."""
    status_code = 401
    detail = "Invalid credentials"


class RateLimited(AppError):
    status_code = 429
    detail = "Too many failed login attempts. Try again later."


class InvalidToken(AppError):
    """Bad signature, expired, revoked, unknown or wrong-type token."""
    status_code = 401
    detail = "Invalid or expired token"


class ExhaustedRetries(AppError):
    """The identifier space looks saturated. Treat as an alerting condition."""
    status_code = 503
    detail = "Unable to generate a unique identifier"


class StorageUnavailable(AppError):
    """The database or the cache could not be reached."""
    status_code = 503
    detail = "Service temporarily unavailable"


class InvalidCode(AppError):
    status_code = 400
    detail = "The given code is wrong or expired"


class EmailAlreadyRegistered(AppError):
    status_code = 400
    detail = "Email already registered"


class WalletLimitExceeded(AppError):
    status_code = 400
    detail = "Maximum number of wallets reached for this currency"


class RestoreAttemptsExceeded(AppError):
    status_code = 403
    detail = "Exceeded attempts to restore password"


class WrongWalletDetails(AppError):
    """Unknown wallet, a wallet of another type, or the same wallet on both sides."""
    status_code = 400
    detail = "Wallet details is incorrect"


class InsufficientFunds(AppError):
    status_code = 400
    detail = "Insufficient funds"
