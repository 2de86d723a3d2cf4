from core.database import Base
from sqlalchemy import CheckConstraint, Column, ForeignKey, Integer, Numeric
from sqlalchemy.orm import relationship
from models.mixins import CreatedAtMixin


class Transfer(Base, CreatedAtMixin):
    __tablename__ = "transfers"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_transfers_amount_positive"),
    )

    #pk
    id = Column(Integer, primary_key=True, index=True)

    #fk
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    from_wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)
    to_wallet_id = Column(Integer, ForeignKey("wallets.id"), nullable=False, index=True)

    #relationships
    from_wallet = relationship("Wallet", foreign_keys=[from_wallet_id])
    to_wallet = relationship("Wallet", foreign_keys=[to_wallet_id])

    amount = Column(Numeric(18, 2), nullable=False)

    @property
    def type(self):
        return self.from_wallet.type

    @property
    def from_identifier(self) -> int:
        return self.from_wallet.identifier

    @property
    def to_identifier(self) -> int:
        return self.to_wallet.identifier
