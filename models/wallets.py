import enum
from core.database import Base
from sqlalchemy import Column, Enum, ForeignKey, Integer, Numeric, UniqueConstraint
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin


class WalletType(str, enum.Enum):
    US_DOLLAR = "us_dollar"
    EURO = "euro"
    GOLD = "gold"


class WalletCategory(str, enum.Enum):
    CURRENCY = "currency"
    METAL = "metal"


WALLET_CATEGORIES = {
    WalletCategory.CURRENCY: (WalletType.US_DOLLAR, WalletType.EURO),
    WalletCategory.METAL: (WalletType.GOLD,),
}


class Wallet(Base, CreatedAtMixin):
    __tablename__ = "wallets"
    __table_args__ = (
        UniqueConstraint("type", "identifier", name="uq_wallets_type_identifier"),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    #relationships
    user = relationship("User", back_populates="wallets")

    type = Column(Enum(WalletType), nullable=False)
    # 8 digits, unique per wallet type
    identifier = Column(Integer, nullable=False)
    # Changed only by transfers
    balance = Column(Numeric(18, 2), default=0, nullable=False)
