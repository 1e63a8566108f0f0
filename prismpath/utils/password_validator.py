import re
from typing import Any, Dict

MIN_LENGTH = 12

_SYMBOL = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?~`]")

STRENGTH_LEVELS = {
    "weak": {"level": 1, "label": "Weak"},
    "fair": {"level": 2, "label": "Fair"},
    "good": {"level": 3, "label": "Good"},
    "strong": {"level": 4, "label": "Strong"},
}


def validate_password(password: str) -> Dict[str, Any]:
    """
    Check a password against the sign-up rules: at least 12 characters with
    upper and lower case letters, a number and a symbol.

    Returns ``{"valid", "errors", "strength"}`` where strength is one of
    weak, fair, good or strong.
    """
    if not password:
        return {"valid": False, "errors": ["Password is required"], "strength": "weak"}

    errors = []
    if len(password) < MIN_LENGTH:
        errors.append(f"Password must be at least {MIN_LENGTH} characters long")

    has_upper = bool(re.search(r"[A-Z]", password))
    has_lower = bool(re.search(r"[a-z]", password))
    has_number = bool(re.search(r"[0-9]", password))
    has_symbol = bool(_SYMBOL.search(password))

    if not has_upper:
        errors.append("Password must contain at least one uppercase letter")
    if not has_lower:
        errors.append("Password must contain at least one lowercase letter")
    if not has_number:
        errors.append("Password must contain at least one number")
    if not has_symbol:
        errors.append("Password must contain at least one symbol (!@#$%^&*...)")

    criteria = [
        len(password) >= MIN_LENGTH,
        len(password) >= 16,
        has_upper,
        has_lower,
        has_number,
        has_symbol,
        len(password) >= 20,
    ]
    met = sum(criteria)

    if met >= 6:
        strength = "strong"
    elif met >= 4:
        strength = "good"
    elif met >= 2:
        strength = "fair"
    else:
        strength = "weak"

    return {"valid": not errors, "errors": errors, "strength": strength}


def get_password_strength(password: str) -> Dict[str, Any]:
    if not password:
        return {"level": 0, "label": "No password"}
    return dict(STRENGTH_LEVELS[validate_password(password)["strength"]])
