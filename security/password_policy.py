from typing import List, Tuple

from flask import current_app


def validate_password(pw, confirm=None) -> Tuple[bool, List[str]]:
    """Check a new password; ``confirm`` is compared when given."""
    errors: List[str] = []

    if not isinstance(pw, str):
        return False, ["Password must be a string"]

    min_len = int(current_app.config.get("PASSWORD_MIN_LEN", 8))
    if len(pw) < min_len:
        errors.append(f"Password must be at least {min_len} characters")
    if len(pw) > 128:
        errors.append("Password must be at most 128 characters")
    if confirm is not None and pw != confirm:
        errors.append("Passwords do not match")

    return (len(errors) == 0), errors
