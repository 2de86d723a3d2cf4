from fastapi import APIRouter, Query, Request
from starlette import status
from schemas.wallet_schemas import (CreateWalletRequest, WalletResponse, WalletCategoryResponse,
    TransferRequest, TransferResponse)
from utils.deps import user_dependency, wallet_service_dependency
from middleware.rate_limiter import limiter


router = APIRouter(
    prefix="/wallets",
    tags=["wallets"]
)


@router.get("", response_model=list[WalletResponse])
@limiter.limit("30/minute")
def get_wallets(request: Request, user_id: user_dependency, wallets: wallet_service_dependency,
                limit: int = Query(20, ge=1, le=100), offset: int = Query(0, ge=0)):
    return wallets.get_list(user_id, limit, offset)


@router.post("", response_model=WalletResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("5/minute")
def create_wallet(request: Request, body: CreateWalletRequest, user_id: user_dependency,
                  wallets: wallet_service_dependency):
    return wallets.create(user_id, body.type)


@router.get("/categories", response_model=list[WalletCategoryResponse])
@limiter.limit("30/minute")
def get_categories(request: Request, user_id: user_dependency, wallets: wallet_service_dependency,
                   limit: int = Query(20, ge=1, le=100), offset: int = Query(0, ge=0)):
    return wallets.get_categories(limit, offset)


@router.get("/transfers", response_model=list[TransferResponse])
@limiter.limit("30/minute")
def get_transfers(request: Request, user_id: user_dependency, wallets: wallet_service_dependency,
                  limit: int = Query(20, ge=1, le=100), offset: int = Query(0, ge=0)):
    return wallets.get_transfers(user_id, limit, offset)


@router.post("/transfers", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit("10/minute")
def create_transfer(request: Request, body: TransferRequest, user_id: user_dependency,
                    wallets: wallet_service_dependency):
    """
    Move funds from one of the caller's wallets to any wallet of the same type.
    """
    return wallets.transfer(user_id, body.type, body.from_identifier, body.to_identifier, body.amount)
