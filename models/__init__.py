from models.users import User, UserStatus
from models.user_tokens import UserToken, UserTokenType
from models.user_codes import UserCode, UserCodeAction
from models.user_logs import UserLog, UserAction, LogTemplate
from models.wallets import Wallet, WalletType, WalletCategory, WALLET_CATEGORIES
from models.transfers import Transfer

__all__ = ["User", "UserStatus", "UserToken", "UserTokenType", "UserCode", "UserCodeAction",
           "UserLog", "UserAction", "LogTemplate", "Wallet", "WalletType", "WalletCategory",
           "WALLET_CATEGORIES", "Transfer"]
