"""Password validation functions."""

MIN_PASSWORD_LENGTH = 8


class PasswordPolicyViolation(ValueError):
    """Raised when a password breaks one of the strength rules."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


def validate_password_strength(password: str) -> str:
    """Validate password strength requirements.

    Requirements (checked in this order, first failure wins):
    - At least 8 characters
    - At least one digit
    - At least one character that is neither a letter nor a digit
    - At least one uppercase letter

    Args:
        password: Password string to validate

    Returns:
        The validated password string

    Raises:
        PasswordPolicyViolation: If password doesn't meet strength requirements

    Examples:
        >>> validate_password_strength("SecurePass123!")
        'SecurePass123!'
        >>> validate_password_strength("short1!")
        Traceback (most recent call last):
        ...
        src.shared.validators.password.PasswordPolicyViolation: Password must be at least 8 characters long

    """
    if len(password) < MIN_PASSWORD_LENGTH:
        raise PasswordPolicyViolation(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long")
    if not any(c.isnumeric() for c in password):
        raise PasswordPolicyViolation("Password must contain at least one number")
    if not any(not c.isalnum() for c in password):
        raise PasswordPolicyViolation("Password must contain at least one special character")
    if not any(c.isupper() for c in password):
        raise PasswordPolicyViolation("Password must contain at least one uppercase letter")
    return password
