from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

from models.wallets import WalletCategory, WalletType


class CreateWalletRequest(BaseModel):
    type: WalletType


class WalletResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    identifier: int
    type: WalletType
    balance: Decimal


class WalletCategoryResponse(BaseModel):
    name: WalletCategory
    types: list[WalletType]


class TransferRequest(BaseModel):
    type: WalletType
    from_identifier: int = Field(ge=10_000_000, le=99_999_999)
    to_identifier: int = Field(ge=10_000_000, le=99_999_999)
    amount: Decimal = Field(gt=0, max_digits=18, decimal_places=2)


class TransferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: WalletType
    from_identifier: int
    to_identifier: int
    amount: Decimal
    created_at: datetime
