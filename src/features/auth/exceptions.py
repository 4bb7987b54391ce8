"""Authentication exceptions."""

from fastapi import HTTPException, status


class AuthenticationException(HTTPException):
    """Base authentication exception."""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class InvalidCredentialsException(AuthenticationException):
    """Raised when the username is unknown or the password is wrong.

    Both cases share one message so callers cannot probe for usernames.
    """

    def __init__(self):
        super().__init__(detail="Invalid credentials")


class NotAuthenticatedException(AuthenticationException):
    """Raised when a protected route is called without a bearer credential."""

    def __init__(self):
        super().__init__(detail="Not authenticated")


class InvalidTokenException(AuthenticationException):
    """Raised when a token is invalid or expired."""

    def __init__(self, detail: str = "Invalid token"):
        super().__init__(detail=detail)


class MalformedTokenException(InvalidTokenException):
    """Raised when a token cannot be decoded or lacks required claims."""

    def __init__(self):
        super().__init__(detail="Malformed token")


class InvalidSignatureException(InvalidTokenException):
    """Raised when the token signature does not match."""

    def __init__(self):
        super().__init__(detail="Invalid token signature")


class TokenExpiredException(InvalidTokenException):
    """Raised when the access token has expired."""

    def __init__(self):
        super().__init__(detail="Token has expired")


class RefreshTokenNotFoundException(InvalidTokenException):
    """Raised when a refresh token is unknown or was already redeemed."""

    def __init__(self):
        super().__init__(detail="Invalid or expired refresh token")


class RefreshTokenExpiredException(InvalidTokenException):
    """Raised when a refresh token is past its expiry."""

    def __init__(self):
        super().__init__(detail="Invalid or expired refresh token")


class AccountLockedException(HTTPException):
    """Raised when the failed-attempt threshold for a username is reached."""

    def __init__(self, detail: str, retry_after_seconds: int):
        super().__init__(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=detail,
            headers={"Retry-After": str(retry_after_seconds)},
        )


class InsufficientPrivilegeException(HTTPException):
    """Raised when a valid identity lacks the elevated flag."""

    def __init__(self, detail: str = "Admin access required"):
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class TokenIssuanceError(Exception):
    """Raised when an access token cannot be signed.

    Not an HTTPException: it reaches the application error handler and is
    answered with a generic 500.
    """
