"""Account-related exceptions."""

from fastapi import HTTPException, status


class AccountException(HTTPException):
    """Base account exception."""

    def __init__(self, detail: str = "Account operation failed", status_code: int = status.HTTP_400_BAD_REQUEST):
        super().__init__(status_code=status_code, detail=detail)


class AccountNotFound(AccountException):
    """Raised when account is not found."""

    def __init__(self):
        super().__init__(detail="User not found", status_code=status.HTTP_404_NOT_FOUND)


class UsernameAlreadyExists(AccountException):
    """Raised when trying to register a username that is already taken."""

    def __init__(self):
        super().__init__(detail="Username already exists", status_code=status.HTTP_409_CONFLICT)


class InvalidUsername(AccountException):
    """Raised when the supplied username is empty or too short."""

    def __init__(self, detail: str):
        super().__init__(detail=detail)


class WeakPassword(AccountException):
    """Raised when the password fails the strength policy."""

    def __init__(self, reason: str):
        super().__init__(detail=reason)


class RegistrationDisabled(AccountException):
    """Raised when self-service registration is closed and setup is already done."""

    def __init__(self):
        super().__init__(
            detail="New user registration is disabled. Please contact the administrator.",
            status_code=status.HTTP_403_FORBIDDEN,
        )


class CannotDeleteOwnAccount(AccountException):
    """Raised when an elevated account tries to delete itself."""

    def __init__(self):
        super().__init__(detail="Cannot delete your own account")


class AlreadyElevated(AccountException):
    """Raised when promoting an account that is already elevated."""

    def __init__(self):
        super().__init__(detail="User is already an admin")
