import re
import secrets

# Excludes look-alikes: 0/O, 1/I/L
ACCESS_CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
ACCESS_CODE_LENGTH = 6

_VALID_CODE = re.compile(r"[A-Z0-9]{6}")


def generate_access_code() -> str:
    """Return a random 6-character student access code."""
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(ACCESS_CODE_LENGTH))


def is_valid_access_code_format(code) -> bool:
    return isinstance(code, str) and bool(_VALID_CODE.fullmatch(code))


def normalize_access_code(code) -> str:
    """Upper-case a user-typed code and drop dashes and whitespace ("x7b-29a" -> "X7B29A")."""
    if not isinstance(code, str):
        return ""
    return re.sub(r"[\s-]", "", code).upper()


def format_access_code(code) -> str:
    """Format a code for display as XXX-XXX. Anything that is not a 6-character code is returned as given."""
    if not code or not isinstance(code, str):
        return ""
    clean = re.sub(r"[^A-Z0-9]", "", code.upper())
    if len(clean) != ACCESS_CODE_LENGTH:
        return code
    return f"{clean[:3]}-{clean[3:]}"
