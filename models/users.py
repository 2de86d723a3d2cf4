import enum
from core.database import Base
from sqlalchemy import Column, Integer, String, Enum
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin


class UserStatus(str, enum.Enum):
    EMAIL_NOT_CONFIRMED = "email_not_confirmed"
    ACTIVE = "active"
    BLOCKED = "blocked"


class User(Base, CreatedAtMixin):
    __tablename__ = "users"

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #relationships
    tokens = relationship("UserToken", back_populates="user", passive_deletes=True)
    codes = relationship("UserCode", back_populates="user", passive_deletes=True)
    wallets = relationship("Wallet", back_populates="user")
    logs = relationship("UserLog", back_populates="user", passive_deletes=True)

    # Public login identifier, 7 digits
    member_id = Column(Integer, unique=True, nullable=False, index=True)
    email = Column(String, unique=True, nullable=False)
    hashed_password = Column(String, nullable=False)
    status = Column(Enum(UserStatus), default=UserStatus.EMAIL_NOT_CONFIRMED, nullable=False)
    first_name = Column(String)
    last_name = Column(String)
    city = Column(String)
    phone_number = Column(String)
