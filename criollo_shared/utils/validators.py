"""
Shared validators for input sanitization.

Dominican identity formats (cedula, phone) and safe LIKE search terms.
"""

import re

from criollo_shared.config.constants import DOMINICAN_AREA_CODES, Limits

CEDULA_PATTERN = re.compile(r"^\d{3}-\d{7}-\d$")
_PHONE_DIGITS = re.compile(r"\D")


def normalize_cedula(value: str) -> str:
    """
    Accept a cedula with or without dashes and return ``###-#######-#``.

    Raises:
        ValueError: If the value does not contain exactly 11 digits.
    """
    digits = re.sub(r"\D", "", value or "")
    if len(digits) != 11:
        raise ValueError("La cédula debe tener el formato ###-#######-#")
    return f"{digits[:3]}-{digits[3:10]}-{digits[10]}"


def is_valid_cedula(value: str) -> bool:
    return bool(CEDULA_PATTERN.match(value or ""))


def normalize_phone(value: str) -> str:
    """
    Normalize a Dominican phone number to ``809-555-1234``.

    Accepts an optional +1 / 1 country prefix, spaces, dashes and parentheses.

    Raises:
        ValueError: If the number is not ten digits with a 809/829/849 prefix.
    """
    digits = _PHONE_DIGITS.sub("", value or "")
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10:
        raise ValueError("El teléfono debe tener 10 dígitos")
    if digits[:3] not in DOMINICAN_AREA_CODES:
        raise ValueError("El teléfono debe iniciar con 809, 829 u 849")
    return f"{digits[:3]}-{digits[3:6]}-{digits[6:]}"


def escape_like_pattern(value: str) -> str:
    """
    Escape special characters in LIKE patterns.

    SQL LIKE uses % and _ as wildcards; escaping them keeps user input literal.
    """
    if not value:
        return value

    value = value.replace("\\", "\\\\")
    value = value.replace("%", "\\%")
    value = value.replace("_", "\\_")
    return value


def validate_quantity(quantity: int, min_val: int = 1, max_val: int = Limits.MAX_ITEM_QUANTITY) -> int:
    """
    Validate quantity is within acceptable range.

    Raises:
        ValueError: If quantity is outside allowed range
    """
    if quantity < min_val:
        raise ValueError(f"Cantidad mínima es {min_val}")
    if quantity > max_val:
        raise ValueError(f"Cantidad máxima es {max_val}")
    return quantity


def sanitize_search_term(term: str, max_length: int = 100) -> str:
    """Trim, collapse whitespace and cap the length of a search term."""
    term = " ".join((term or "").split())
    return term[:max_length]


def validate_password_strength(password: str) -> str:
    """
    At least eight characters with letters and digits.

    Raises:
        ValueError: If the password is too weak.
    """
    if len(password) < Limits.MIN_PASSWORD_LENGTH:
        raise ValueError(f"La contraseña debe tener al menos {Limits.MIN_PASSWORD_LENGTH} caracteres")
    if not re.search(r"[A-Za-z]", password) or not re.search(r"\d", password):
        raise ValueError("La contraseña debe contener letras y números")
    return password
