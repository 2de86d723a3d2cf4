from datetime import timedelta
from typing import Optional

from fastapi import BackgroundTasks
from sqlalchemy.orm import Session

from core.config import settings
from core.database import run_atomic
from core.exceptions import EmailAlreadyRegistered, InvalidCode, RestoreAttemptsExceeded
from models.user_codes import UserCode, UserCodeAction
from models.user_logs import LogTemplate, UserAction
from models.users import User, UserStatus
from schemas.auth_schemas import SignUpRequest
from services.activity_logger import UserActivityLogger
from services.email_service import send_email
from services.identifier_generator import IdentifierGenerator
from services.session_manager import SessionManager
from services.wallet_service import INITIAL_WALLET_TYPES, WalletService
from utils.clock import Clock, as_utc, utcnow
from utils.hashing import get_password_hash
from utils.logger import get_logger

logger = get_logger(__name__)


class AuthService:
    """
    Account lifecycle around the session engine: signup, e-mail
    confirmation and the three-step password restore.
    """

    def __init__(
        self,
        db: Session,
        sessions: SessionManager,
        *,
        generator: Optional[IdentifierGenerator] = None,
        wallets: Optional[WalletService] = None,
        clock: Clock = utcnow,
    ):
        self.db = db
        self.sessions = sessions
        self.clock = clock
        self.generator = generator or IdentifierGenerator(settings.IDENTIFIER_MAX_ATTEMPTS)
        self.activity = UserActivityLogger(db)
        self.wallets = wallets or WalletService(db, self.generator, self.activity)

    def sign_up(self, request: SignUpRequest, bg: BackgroundTasks) -> User:
        """
        Creates a new user and sends the confirmation code.

        Flow:
        1. Check if email already exists
        2. Generate a unique member id
        3. Create user (unconfirmed), confirmation code and initial wallets in one transaction
        4. Send confirmation email
        """
        email = request.email.lower().strip()

        if self.db.query(User.id).filter(User.email == email).first() is not None:
            logger.warning("Registration attempt with existing email", extra={"email": email})
            raise EmailAlreadyRegistered()

        member_id = int(self.generator.generate(
            settings.MEMBER_ID_LENGTH,
            lambda candidate: self.db.query(User.id).filter(User.member_id == int(candidate)).first() is not None,
            only_digits=True
        ))

        def create():
            user = User(
                member_id=member_id,
                email=email,
                hashed_password=get_password_hash(request.password),
                status=UserStatus.EMAIL_NOT_CONFIRMED,
                first_name=request.first_name,
                last_name=request.last_name,
                city=request.city,
                phone_number=request.phone_number
            )
            self.db.add(user)
            self.db.flush()

            confirm_code = self._add_code(
                user.id,
                UserCodeAction.CONFIRM_EMAIL,
                settings.EMAIL_CONFIRM_CODE_LENGTH,
                settings.CONFIRM_EMAIL_EXPIRATION
            )
            for wallet_type in INITIAL_WALLET_TYPES:
                self.wallets.add_wallet(user.id, wallet_type)
            self.activity.add(user.id, UserAction.CREATE, LogTemplate.SIGNUP, str(member_id))
            return user, confirm_code.code

        user, code = run_atomic(self.db, create)
        self.db.refresh(user)

        email_body = f"""
        <html>
        <body>
            <h2>Welcome!</h2>
            <p>Your member ID is <strong>{member_id}</strong>. Your confirmation code is:</p>
            <h1 style="color: #4CAF50; font-size: 32px;">{code}</h1>
            <p>This code will expire in {settings.CONFIRM_EMAIL_EXPIRATION} minutes.</p>
        </body>
        </html>
        """
        bg.add_task(send_email, to_email=email, subject="Confirm your email", body=email_body)

        logger.info("User registered", extra={"user_id": user.id, "member_id": member_id})
        return user

    def confirm_email(self, code: str) -> User:
        user_code = self._get_valid_code(code, UserCodeAction.CONFIRM_EMAIL)
        user = user_code.user

        def confirm():
            if user.status == UserStatus.EMAIL_NOT_CONFIRMED:
                user.status = UserStatus.ACTIVE
            self.db.delete(user_code)

        run_atomic(self.db, confirm)

        logger.info("Email confirmed", extra={"user_id": user.id})
        return user

    def restore_password_initiate(self, email: str, member_id: int, bg: BackgroundTasks) -> None:
        """
        Start a password restore. Silently does nothing when the pair
        (email, member id) matches no user, so callers cannot probe accounts.
        """
        user = self.db.query(User).filter(
            User.email == email.lower().strip(),
            User.member_id == member_id
        ).one_or_none()

        if user is None:
            logger.info("Password restore requested for unknown account", extra={"member_id": member_id})
            return

        window_start = self.clock() - timedelta(minutes=settings.MAX_RESET_PASSWORD_ATTEMPTS_EXPIRATION)
        recent = self.db.query(UserCode).filter(
            UserCode.user_id == user.id,
            UserCode.action == UserCodeAction.RESTORE_PASSWORD_INITIATE,
            UserCode.created_at >= window_start
        ).count()
        if recent >= settings.MAX_RESET_PASSWORD_ATTEMPTS:
            logger.warning("Password restore attempts exceeded", extra={"user_id": user.id})
            raise RestoreAttemptsExceeded()

        user_code = run_atomic(self.db, lambda: self._add_code(
            user.id,
            UserCodeAction.RESTORE_PASSWORD_INITIATE,
            settings.RESTORE_PASSWORD_CODE_LENGTH,
            settings.RESTORE_PASSWORD_INITIATE_CODE_EXPIRATION,
            only_digits=True
        ))

        email_body = f"""
        <html>
        <body>
            <h2>Password Reset Request</h2>
            <p>Your code is:</p>
            <h1 style="font-size: 32px;">{user_code.code}</h1>
            <p>This code expires in {settings.RESTORE_PASSWORD_INITIATE_CODE_EXPIRATION} minutes.
            If you didn't request this, please ignore this email.</p>
        </body>
        </html>
        """
        bg.add_task(send_email, to_email=user.email, subject="Reset your password", body=email_body)

        logger.info("Password restore initiated", extra={"user_id": user.id})

    def restore_password_confirm_code(self, code: str) -> str:
        """
        Swap the e-mailed code for the one that authorises the final step.

        Returns:
            The completion code
        """
        user_code = self._get_valid_code(code, UserCodeAction.RESTORE_PASSWORD_INITIATE)
        user_id = user_code.user_id

        def swap():
            complete = self._add_code(
                user_id,
                UserCodeAction.RESTORE_PASSWORD_COMPLETE,
                settings.RESTORE_PASSWORD_COMPLETE_CODE_LENGTH,
                settings.RESTORE_PASSWORD_COMPLETE_CODE_EXPIRATION,
                only_digits=True
            )
            self.db.delete(user_code)
            return complete.code

        return run_atomic(self.db, swap)

    def restore_password_complete(self, code: str, password: str) -> None:
        """Set the new password and end every session of the user."""
        user_code = self._get_valid_code(code, UserCodeAction.RESTORE_PASSWORD_COMPLETE)
        user = user_code.user
        user_id = user.id

        def complete():
            user.hashed_password = get_password_hash(password)
            self.db.delete(user_code)
            self.activity.add(user_id, UserAction.CHANGE, LogTemplate.PASSWORD_CHANGED)

        run_atomic(self.db, complete)
        self.sessions.revoke_user_sessions(user_id)

        logger.info("Password restored", extra={"user_id": user_id})

    def _add_code(self, user_id: int, action: UserCodeAction, length: int, lifetime_minutes: int,
                  only_digits: bool = False) -> UserCode:
        now = self.clock()
        code = self.generator.generate(
            length,
            lambda candidate: self.db.query(UserCode.id).filter(
                UserCode.action == action,
                UserCode.code == candidate
            ).first() is not None,
            only_digits=only_digits
        )
        user_code = UserCode(
            user_id=user_id,
            code=code,
            action=action,
            expire_at=now + timedelta(minutes=lifetime_minutes),
            created_at=now
        )
        self.db.add(user_code)
        self.db.flush()
        return user_code

    def _get_valid_code(self, code: str, action: UserCodeAction) -> UserCode:
        user_code = self.db.query(UserCode).filter(
            UserCode.code == code,
            UserCode.action == action
        ).one_or_none()

        if user_code is None or as_utc(user_code.expire_at) <= self.clock():
            logger.warning("Invalid or expired code presented", extra={"action": action.value})
            raise InvalidCode()

        return user_code
