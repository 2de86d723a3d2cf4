from datetime import datetime
from typing import Callable, Optional, Tuple, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.database import run_atomic
from core.exceptions import StorageUnavailable
from models.user_tokens import UserToken, UserTokenType
from utils.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class TokenStore:
    """
    Persistence of issued tokens.

    Write operations run inside `run_atomic`, so a pair is always inserted or
    removed as a unit.
    """

    def __init__(self, db: Session):
        self.db = db

    def run_atomic(self, fn: Callable[[], T]) -> T:
        return run_atomic(self.db, fn)

    def _read(self, fn: Callable[[], T]) -> T:
        try:
            return fn()
        except SQLAlchemyError as e:
            logger.error("Token lookup failed", extra={"error_type": type(e).__name__}, exc_info=True)
            raise StorageUnavailable() from e

    # Reads

    def find_by_code(self, code: str, token_type: UserTokenType) -> Optional[UserToken]:
        return self._read(lambda: self.db.query(UserToken).filter(
            UserToken.code == code,
            UserToken.type == token_type
        ).one_or_none())

    def code_exists(self, code: str, token_type: UserTokenType) -> bool:
        return self._read(lambda: self.db.query(UserToken.id).filter(
            UserToken.code == code,
            UserToken.type == token_type
        ).first() is not None)

    def find_related(self, token_id: int) -> Optional[UserToken]:
        """Return the other member of the token's pair, if it still exists."""
        def lookup():
            token = self.db.get(UserToken, token_id)
            if token is None:
                return None
            if token.type == UserTokenType.ACCESS:
                if token.related_token_id is None:
                    return None
                return self.db.get(UserToken, token.related_token_id)
            return self.db.query(UserToken).filter(UserToken.related_token_id == token.id).first()

        return self._read(lookup)

    def find_access_tokens(self, user_id: int) -> list[UserToken]:
        return self._read(lambda: self.db.query(UserToken).filter(
            UserToken.user_id == user_id,
            UserToken.type == UserTokenType.ACCESS
        ).all())

    # Writes

    def _insert_pair(self, user_id: int, access_code: str, access_expire_at: datetime,
                     refresh_code: str, refresh_expire_at: datetime) -> Tuple[int, int]:
        refresh = UserToken(
            user_id=user_id,
            type=UserTokenType.REFRESH,
            code=refresh_code,
            expire_at=refresh_expire_at
        )
        self.db.add(refresh)
        self.db.flush()

        access = UserToken(
            user_id=user_id,
            type=UserTokenType.ACCESS,
            code=access_code,
            expire_at=access_expire_at,
            related_token_id=refresh.id
        )
        self.db.add(access)
        self.db.flush()

        return access.id, refresh.id

    def _delete_pair_by_refresh_id(self, refresh_id: int, refresh_code: str) -> int:
        """
        Delete a refresh record and the access record pointing at it.

        The refresh row is matched on id and code, so a row that reused the id
        is never touched. Returns the number of refresh rows removed (0 or 1);
        a second caller racing on the same pair always sees 0 and deletes
        nothing.
        """
        removed = self.db.query(UserToken).filter(
            UserToken.id == refresh_id,
            UserToken.type == UserTokenType.REFRESH,
            UserToken.code == refresh_code
        ).delete(synchronize_session=False)

        if removed:
            self.db.query(UserToken).filter(
                UserToken.related_token_id == refresh_id,
                UserToken.type == UserTokenType.ACCESS
            ).delete(synchronize_session=False)

        return removed

    def create_pair(self, user_id: int, access_code: str, access_expire_at: datetime,
                    refresh_code: str, refresh_expire_at: datetime) -> Tuple[int, int]:
        """
        Insert a REFRESH record, then an ACCESS record linked to it.

        Returns:
            Tuple of (access_id, refresh_id)
        """
        return self.run_atomic(lambda: self._insert_pair(
            user_id, access_code, access_expire_at, refresh_code, refresh_expire_at
        ))

    def delete_pair(self, token_id: int) -> int:
        """
        Delete the token and its pair partner. Deleting an absent pair is a no-op.

        Returns:
            Number of refresh rows removed
        """
        def delete():
            token = self.db.get(UserToken, token_id)
            if token is None:
                return 0
            if token.type == UserTokenType.ACCESS:
                refresh = self.db.get(UserToken, token.related_token_id) if token.related_token_id else None
                if refresh is None:
                    self.db.query(UserToken).filter(UserToken.id == token.id).delete(synchronize_session=False)
                    return 0
                token = refresh
            return self._delete_pair_by_refresh_id(token.id, token.code)

        return self.run_atomic(delete)

    def rotate_pair(self, refresh_id: int, consumed_code: str, user_id: int, access_code: str,
                    access_expire_at: datetime, refresh_code: str,
                    refresh_expire_at: datetime) -> Optional[Tuple[int, int]]:
        """
        Replace the pair owning the refresh record (`refresh_id`, `consumed_code`)
        with a new one in one transaction.

        Returns:
            (access_id, refresh_id) of the new pair, or None when the old
            refresh record was already gone (consumed by another caller)
        """
        def rotate():
            if self._delete_pair_by_refresh_id(refresh_id, consumed_code) == 0:
                return None
            return self._insert_pair(user_id, access_code, access_expire_at, refresh_code, refresh_expire_at)

        return self.run_atomic(rotate)

    def delete_all_for_user(self, user_id: int) -> int:
        return self.run_atomic(lambda: self.db.query(UserToken).filter(
            UserToken.user_id == user_id
        ).delete(synchronize_session=False))
