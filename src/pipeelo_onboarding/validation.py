"""
Validation predicates for onboarding data.

Plain predicate and formatting helpers for Brazilian documents (CNPJ, CPF),
postal codes (CEP), emails and generated identifiers.
"""

import re
from uuid import UUID

_NON_DIGITS = re.compile(r"\D")
_EMAIL = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def digits_only(value: str | None) -> str:
    """Strip every non-digit character."""
    return _NON_DIGITS.sub("", value or "")


def is_valid_cnpj(value: str | None) -> bool:
    return len(digits_only(value)) == 14


def is_valid_cpf(value: str | None) -> bool:
    return len(digits_only(value)) == 11


def is_valid_cep(value: str | None) -> bool:
    return len(digits_only(value)) == 8


def is_valid_email(value: str | None) -> bool:
    return bool(value) and _EMAIL.match(value) is not None


def is_valid_uuid(value) -> bool:
    """Check whether a value is a generated identifier (UUID)."""
    if isinstance(value, UUID):
        return True
    if not isinstance(value, str):
        return False
    try:
        UUID(value)
    except ValueError:
        return False
    return True


def format_cnpj(value: str) -> str:
    return re.sub(r"^(\d{2})(\d{3})(\d{3})(\d{4})(\d{2})$", r"\1.\2.\3/\4-\5", digits_only(value))


def format_cpf(value: str) -> str:
    return re.sub(r"^(\d{3})(\d{3})(\d{3})(\d{2})$", r"\1.\2.\3-\4", digits_only(value))


def format_cep(value: str) -> str:
    return re.sub(r"^(\d{5})(\d{3})$", r"\1-\2", digits_only(value))


def password_strength_feedback(password: str) -> list[str]:
    """
    Check password strength.

    Returns:
        List of problems; empty when the password is acceptable
    """
    feedback = []
    if len(password) < 8:
        feedback.append("Password must be at least 8 characters long")
    if not re.search(r"[A-Z]", password):
        feedback.append("Password must contain an uppercase letter")
    if not re.search(r"[a-z]", password):
        feedback.append("Password must contain a lowercase letter")
    if not re.search(r"[0-9]", password):
        feedback.append("Password must contain a digit")
    return feedback
