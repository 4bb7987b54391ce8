"""Account domain models."""

from typing import TYPE_CHECKING

from pwdlib import PasswordHash
from sqlalchemy import Boolean, Integer, String, false
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.database.base import Base, TimestampMixin

if TYPE_CHECKING:
    from src.features.auth.models import RefreshToken


pwd_hasher = PasswordHash.recommended()

# Verified against when the username is unknown so both branches cost one Argon2 check
_TIMING_DUMMY_HASH = pwd_hasher.hash("timing-equalizer-not-a-real-password")


class Account(Base, TimestampMixin):
    """Account model for authentication and authorization.

    `is_admin` is the elevated flag: the first account ever created gets it,
    later accounts only through promotion by an elevated account.
    """

    __tablename__ = "accounts"

    # Primary key
    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    # Identity (globally unique)
    username: Mapped[str] = mapped_column(String(50), nullable=False, unique=True, index=True)

    # Authentication
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    # Authorization
    is_admin: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())

    refresh_tokens: Mapped[list["RefreshToken"]] = relationship(
        back_populates="account",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def verify_password(self, plain_password: str) -> bool:
        """Verify a password against the hash using Argon2.

        Salt is automatically extracted from the hash by pwdlib.
        """
        return pwd_hasher.verify(plain_password, self.hashed_password)

    @staticmethod
    def hash_password(password: str) -> str:
        """Hash a password using Argon2.

        Salt is automatically generated and embedded in the returned hash.
        """
        return pwd_hasher.hash(password)

    @staticmethod
    def burn_password_check(plain_password: str) -> bool:
        """Spend the cost of one verification for a username with no account."""
        pwd_hasher.verify(plain_password, _TIMING_DUMMY_HASH)
        return False
