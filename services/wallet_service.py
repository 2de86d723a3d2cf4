from decimal import Decimal
from typing import Optional

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from core.config import settings
from core.database import run_atomic
from core.exceptions import InsufficientFunds, WalletLimitExceeded, WrongWalletDetails
from models.transfers import Transfer
from models.user_logs import LogTemplate, UserAction
from models.wallets import WALLET_CATEGORIES, Wallet, WalletType
from services.activity_logger import UserActivityLogger
from services.identifier_generator import IdentifierGenerator
from utils.logger import get_logger

logger = get_logger(__name__)

INITIAL_WALLET_TYPES = (WalletType.US_DOLLAR, WalletType.EURO, WalletType.GOLD)


def wallet_reference(wallet: Wallet) -> str:
    """Short wallet label used in the activity trail, e.g. G12345678."""
    return f"{wallet.type.name[0]}{wallet.identifier}"


class WalletService:

    def __init__(self, db: Session, generator: Optional[IdentifierGenerator] = None,
                 activity: Optional[UserActivityLogger] = None):
        self.db = db
        self.generator = generator or IdentifierGenerator(settings.IDENTIFIER_MAX_ATTEMPTS)
        self.activity = activity or UserActivityLogger(db)

    def create(self, user_id: int, wallet_type: WalletType) -> Wallet:
        """
        Open a new wallet of `wallet_type` for the user.

        Raises:
            WalletLimitExceeded: The user already holds MAX_WALLETS_PER_USER of this type
        """
        def open_wallet():
            wallet = self.add_wallet(user_id, wallet_type)
            self.activity.add(user_id, UserAction.CREATE, LogTemplate.PLAIN, wallet_reference(wallet))
            return wallet

        wallet = run_atomic(self.db, open_wallet)
        self.db.refresh(wallet)

        logger.info(
            "Wallet created",
            extra={"user_id": user_id, "wallet_type": wallet_type.value, "identifier": wallet.identifier}
        )
        return wallet

    def add_wallet(self, user_id: int, wallet_type: WalletType) -> Wallet:
        """Stage a wallet in the current transaction without committing."""
        count = self.db.query(Wallet).filter(
            Wallet.user_id == user_id,
            Wallet.type == wallet_type
        ).count()

        if count >= settings.MAX_WALLETS_PER_USER:
            logger.warning(
                "Wallet limit reached",
                extra={"user_id": user_id, "wallet_type": wallet_type.value}
            )
            raise WalletLimitExceeded()

        identifier = self.generator.generate(
            settings.WALLET_IDENTIFIER_LENGTH,
            lambda candidate: self._identifier_taken(wallet_type, int(candidate)),
            only_digits=True
        )

        wallet = Wallet(user_id=user_id, type=wallet_type, identifier=int(identifier))
        self.db.add(wallet)
        self.db.flush()
        return wallet

    def _identifier_taken(self, wallet_type: WalletType, identifier: int) -> bool:
        return self.db.query(Wallet.id).filter(
            Wallet.type == wallet_type,
            Wallet.identifier == identifier
        ).first() is not None

    def get_list(self, user_id: int, limit: int = 20, offset: int = 0) -> list[Wallet]:
        return self.db.query(Wallet).filter(
            Wallet.user_id == user_id
        ).order_by(Wallet.id).offset(offset).limit(limit).all()

    def get_categories(self, limit: int = 20, offset: int = 0) -> list[dict]:
        """Wallet categories with the wallet types each one groups."""
        categories = list(WALLET_CATEGORIES.items())[offset:offset + limit]
        return [{"name": name, "types": list(types)} for name, types in categories]

    # Transfers

    def transfer(self, user_id: int, wallet_type: WalletType, from_identifier: int,
                 to_identifier: int, amount: Decimal) -> Transfer:
        """
        Move `amount` from one of the user's wallets to any wallet of the same type.

        The debit is a conditional update on the balance, so two transfers
        racing on one wallet can never overdraw it.

        Raises:
            WrongWalletDetails: Either wallet is unknown, the source is not the
                user's, or both sides are the same wallet
            InsufficientFunds: The source balance is below `amount`
        """
        def move():
            source = self._find_wallet(wallet_type, from_identifier, user_id)
            payee = self._find_wallet(wallet_type, to_identifier)
            if source is None or payee is None or source.id == payee.id:
                raise WrongWalletDetails()

            debited = self.db.query(Wallet).filter(
                Wallet.id == source.id,
                Wallet.balance >= amount
            ).update({Wallet.balance: Wallet.balance - amount}, synchronize_session=False)
            if not debited:
                raise InsufficientFunds()

            self.db.query(Wallet).filter(Wallet.id == payee.id).update(
                {Wallet.balance: Wallet.balance + amount}, synchronize_session=False
            )

            record = Transfer(user_id=user_id, from_wallet_id=source.id, to_wallet_id=payee.id, amount=amount)
            self.db.add(record)
            self.db.flush()
            return record

        try:
            record = run_atomic(self.db, move)
        except (WrongWalletDetails, InsufficientFunds) as e:
            logger.warning(
                "Transfer refused",
                extra={"user_id": user_id, "wallet_type": wallet_type.value, "reason": type(e).__name__}
            )
            raise

        self.db.refresh(record)

        logger.info(
            "Transfer completed",
            extra={"user_id": user_id, "transfer_id": record.id, "wallet_type": wallet_type.value}
        )
        return record

    def get_transfers(self, user_id: int, limit: int = 20, offset: int = 0) -> list[Transfer]:
        """Transfers sent from or received into the user's wallets, newest first."""
        own_wallets = select(Wallet.id).where(Wallet.user_id == user_id)
        return self.db.query(Transfer).filter(
            or_(Transfer.from_wallet_id.in_(own_wallets), Transfer.to_wallet_id.in_(own_wallets))
        ).order_by(Transfer.id.desc()).offset(offset).limit(limit).all()

    def _find_wallet(self, wallet_type: WalletType, identifier: int,
                     user_id: Optional[int] = None) -> Optional[Wallet]:
        query = self.db.query(Wallet).filter(
            Wallet.type == wallet_type,
            Wallet.identifier == identifier
        )
        if user_id is not None:
            query = query.filter(Wallet.user_id == user_id)
        return query.one_or_none()
