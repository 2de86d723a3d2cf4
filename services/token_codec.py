from dataclasses import dataclass
from datetime import datetime, timezone

from jose import jwt, JWTError

from models.user_tokens import UserTokenType
from utils.clock import Clock, utcnow


class TokenDecodeError(Exception):
    pass


class InvalidSignature(TokenDecodeError):
    """Signature mismatch, or a string that is not a well-formed token."""


class TokenExpired(TokenDecodeError):
    pass


@dataclass(frozen=True)
class TokenPayload:
    user_id: int
    code: str
    type: UserTokenType
    expires_at: datetime


class TokenCodec:
    """
    Signs and verifies the JWT handed to clients.

    Claims: `sub` (user id), `code`, `type` and `exp`. Expiry is checked
    against the injected clock rather than by python-jose so tests can move
    time.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", clock: Clock = utcnow):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.clock = clock

    def sign(self, payload: TokenPayload) -> str:
        claims = {
            "sub": str(payload.user_id),
            "code": payload.code,
            "type": payload.type.value,
            "exp": int(payload.expires_at.timestamp()),
        }
        return jwt.encode(claims, self.secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenPayload:
        """
        Decode `token` and check its integrity and expiry.

        Raises:
            InvalidSignature: Bad signature or malformed payload
            TokenExpired: `exp` is not in the future
        """
        try:
            claims = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False},
            )
        except JWTError as e:
            raise InvalidSignature(str(e)) from e

        payload = self._parse(claims)

        if payload.expires_at <= self.clock():
            raise TokenExpired()

        return payload

    @staticmethod
    def _parse(claims: dict) -> TokenPayload:
        sub = claims.get("sub")
        code = claims.get("code")
        exp = claims.get("exp")

        if not isinstance(sub, str) or not sub.isdigit():
            raise InvalidSignature("Malformed subject")
        if not isinstance(code, str) or not code:
            raise InvalidSignature("Malformed code")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise InvalidSignature("Malformed expiry")

        try:
            token_type = UserTokenType(claims.get("type"))
        except ValueError as e:
            raise InvalidSignature("Unknown token type") from e

        return TokenPayload(
            user_id=int(sub),
            code=code,
            type=token_type,
            expires_at=datetime.fromtimestamp(exp, tz=timezone.utc),
        )
