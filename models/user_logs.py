import enum
from core.database import Base
from sqlalchemy import Column, Enum, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin


class UserAction(str, enum.Enum):
    CREATE = "create"
    LOGIN = "login"
    LOGOUT = "logout"
    CHANGE = "change"


class LogTemplate(str, enum.Enum):
    PLAIN = "plain"
    SIGNUP = "signup"
    SIGNIN = "signin"
    PASSWORD_CHANGED = "password_changed"


class UserLog(Base, CreatedAtMixin):
    """Account activity trail: signups, logins, logouts, wallet and password changes."""
    __tablename__ = "user_logs"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="logs")

    action = Column(Enum(UserAction), nullable=False)
    template = Column(Enum(LogTemplate), nullable=False)
    # client ip, member id, wallet reference
    details = Column(String(255), nullable=True)
