import enum
from core.database import Base
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin


class UserTokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class UserToken(Base, CreatedAtMixin):
    """
    One issued access or refresh token.

    Tokens are created in pairs: the REFRESH record first, then the ACCESS
    record whose `related_token_id` points at it. The refresh side stores no
    back-reference, its access token is found by lookup. Deleting a refresh
    record cascades to its access record.
    """
    __tablename__ = "user_tokens"
    __table_args__ = (
        UniqueConstraint("type", "code", name="uq_user_tokens_type_code"),
        # ids must never be reused, rotation deletes by id
        {"sqlite_autoincrement": True},
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    related_token_id = Column(
        Integer, ForeignKey("user_tokens.id", ondelete="CASCADE"), nullable=True, index=True
    )

    #relationships
    user = relationship("User", back_populates="tokens")

    type = Column(Enum(UserTokenType), nullable=False)
    code = Column(String(20), nullable=False)
    expire_at = Column(DateTime(timezone=True), nullable=False)
