from outstocked.client.errors import InputError

MIN_PASSWORD_LENGTH = 6


def validate_credentials(email: str, password: str) -> None:
    if not email or not password:
        raise InputError("Please fill in email and password")


def validate_password_setup(password: str, confirm_password: str) -> None:
    if not password or not confirm_password:
        raise InputError("Please fill in both password fields")
    if password != confirm_password:
        raise InputError("Passwords do not match")
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters")
