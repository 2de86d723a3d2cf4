from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request
from core.config import settings
from services.token_codec import TokenCodec, TokenDecodeError

_codec = TokenCodec(settings.SECRET_KEY, settings.ALGORITHM)


def get_user_id(request: Request):
    token = request.headers.get("Authorization")
    if token:
        try:
            token = token.replace("Bearer ", "")
            payload = _codec.verify(token)
            return str(payload.user_id)
        except TokenDecodeError:
            pass

    return get_remote_address(request)

limiter = Limiter(
    key_func=get_user_id,
    default_limits=["200/hour"],
    enabled=settings.ENV != "testing"
)
