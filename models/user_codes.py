import enum
from core.database import Base
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin


class UserCodeAction(str, enum.Enum):
    CONFIRM_EMAIL = "confirm_email"
    RESTORE_PASSWORD_INITIATE = "restore_password_initiate"
    RESTORE_PASSWORD_COMPLETE = "restore_password_complete"


class UserCode(Base, CreatedAtMixin):
    """One-time codes sent by e-mail or handed back during password restore."""
    __tablename__ = "user_codes"
    __table_args__ = (
        UniqueConstraint("action", "code", name="uq_user_codes_action_code"),
        {"sqlite_autoincrement": True},
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="codes")

    code = Column(String(20), nullable=False)
    action = Column(Enum(UserCodeAction), nullable=False)
    expire_at = Column(DateTime(timezone=True), nullable=False)
