"""Authentication service layer."""

import logging
import math
from typing import NoReturn

from sqlalchemy.ext.asyncio import AsyncSession

from src.config.settings import Settings
from src.features.account.exceptions import InvalidUsername, RegistrationDisabled, WeakPassword
from src.features.account.models import Account
from src.features.account.service import AccountService
from src.shared.validators.password import PasswordPolicyViolation, validate_password_strength

from .exceptions import AccountLockedException, InvalidCredentialsException, RefreshTokenNotFoundException
from .jwt_utils import Identity, TokenIssuer
from .lockout import LockoutTracker
from .refresh_tokens import RefreshTokenStore
from .schemas import AuthResponse, TokenResponse

logger = logging.getLogger(__name__)

MIN_USERNAME_LENGTH = 3
MAX_USERNAME_LENGTH = 50


class AuthService:
    """Registration, login and token renewal for one request transaction."""

    def __init__(self, session: AsyncSession, issuer: TokenIssuer, settings: Settings):
        self.session = session
        self.issuer = issuer
        self.settings = settings
        self.lockout = LockoutTracker(
            session,
            max_attempts=settings.account_lockout_attempts,
            window_minutes=settings.account_lockout_duration_minutes,
        )
        self.refresh_tokens = RefreshTokenStore(session, ttl_days=settings.refresh_token_expire_days)

    async def register(self, username: str, password: str) -> AuthResponse:
        """Create an account and sign it in.

        Args:
            username: Requested username
            password: Plain text password

        Returns:
            AuthResponse with a fresh token pair

        Raises:
            RegistrationDisabled: If registration is closed and an account exists
            InvalidUsername: If username or password is empty, or username length is out of range
            WeakPassword: If the password fails the strength policy
            UsernameAlreadyExists: If the username is taken

        """
        if not self.settings.allow_registration and await AccountService.count_accounts(self.session) > 0:
            raise RegistrationDisabled()

        if not username or not password:
            raise InvalidUsername("Username and password cannot be empty")
        if len(username) < MIN_USERNAME_LENGTH:
            raise InvalidUsername(f"Username must be at least {MIN_USERNAME_LENGTH} characters")
        if len(username) > MAX_USERNAME_LENGTH:
            raise InvalidUsername(f"Username must be at most {MAX_USERNAME_LENGTH} characters")

        try:
            validate_password_strength(password)
        except PasswordPolicyViolation as err:
            raise WeakPassword(err.reason) from err

        account = await AccountService.create_account(self.session, username, password)
        return await self.create_tokens(account)

    async def login(self, username: str, password: str) -> AuthResponse:
        """Authenticate a username/password pair.

        The lockout check runs before the account lookup, for every username,
        so locked and unknown usernames are indistinguishable and guessing
        against a name with no account is throttled too. Logins for the same
        username run one at a time from the lockout check until the outcome
        is recorded, so parallel guesses cannot overshoot the threshold.

        Raises:
            AccountLockedException: If the failure threshold is reached
            InvalidCredentialsException: Unknown username or wrong password

        """
        async with self.lockout.serialized(username):
            if await self.lockout.is_locked(username):
                logger.warning(f"Login attempt for locked username: {username}")
                retry_after = await self.lockout.retry_after_seconds(username)
                raise AccountLockedException(
                    self.settings.lockout_retry_hint(math.ceil(retry_after / 60)), retry_after
                )

            account = await AccountService.get_by_username(self.session, username)

            if account is None:
                Account.burn_password_check(password)
                await self._reject(username)

            if not account.verify_password(password):
                await self._reject(username)

            await self.lockout.record_attempt(username, success=True)

        tokens = await self.create_tokens(account)

        logger.info(f"User logged in: {account.username}")
        return tokens

    async def _reject(self, username: str) -> NoReturn:
        # Commit before raising so the failure survives the request rollback
        await self.lockout.record_attempt(username, success=False)
        await self.session.commit()
        raise InvalidCredentialsException()

    async def refresh(self, refresh_token: str) -> TokenResponse:
        """Exchange a refresh token for a new access token and a rotated refresh token."""
        user_id = await self.refresh_tokens.redeem(refresh_token)

        account = await AccountService.get_account(self.session, user_id)
        if account is None:
            raise RefreshTokenNotFoundException()

        tokens = await self.create_tokens(account)
        logger.info(f"Tokens refreshed for user: {account.username}")
        return TokenResponse(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=tokens.expires_in,
        )

    async def create_tokens(self, account: Account) -> AuthResponse:
        """Create an access token and a persisted refresh token for an account."""
        identity = Identity(user_id=account.id, username=account.username, is_admin=account.is_admin)
        access_token = self.issuer.issue(identity)
        refresh_token = await self.refresh_tokens.issue(account.id)

        return AuthResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=self.issuer.expires_in,
            username=account.username,
        )
