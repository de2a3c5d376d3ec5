"""
Input checks run before any upstream call.

Each check returns a structured result listing the offending fields, so the
orchestrator can raise one ValidationError that tells the caller exactly
what to fix.
"""

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Optional


PAYMENT_REQUIRED_FIELDS = ("amount", "creditorIban", "creditorName", "bankName", "bankCountry")
ACCESS_REQUIRED_FIELDS = ("bankName", "bankCountry")


@dataclass
class ValidationResult:
    """Result of an input check."""

    valid: bool
    fields: list[str] = field(default_factory=list)
    message: str = ""


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    return False


def check_required(values: dict[str, Any], required: tuple[str, ...]) -> ValidationResult:
    missing = [name for name in required if _is_missing(values.get(name))]
    if missing:
        return ValidationResult(valid=False, fields=missing, message="Missing required fields")
    return ValidationResult(valid=True)


def check_payment(
    amount: Any,
    creditor_iban: Optional[str],
    creditor_name: Optional[str],
    bank_name: Optional[str],
    bank_country: Optional[str],
) -> ValidationResult:
    """
    Check a payment-creation request.

    Args:
        amount: Amount in the settlement currency; must be positive.
        creditor_iban: Beneficiary IBAN.
        creditor_name: Beneficiary name.
        bank_name: Payer's bank (ASPSP) name.
        bank_country: Payer's bank country code, two letters in any case.

    Returns:
        ValidationResult listing every missing or invalid field.
    """
    result = check_required(
        {
            "amount": amount,
            "creditorIban": creditor_iban,
            "creditorName": creditor_name,
            "bankName": bank_name,
            "bankCountry": bank_country,
        },
        PAYMENT_REQUIRED_FIELDS,
    )
    if not result.valid:
        return result

    value = to_decimal(amount)
    if value is None or not value.is_finite() or value <= 0:
        return ValidationResult(valid=False, fields=["amount"], message=f"Invalid amount: {amount}")

    return check_country(bank_country)


def check_access(bank_name: Optional[str], bank_country: Optional[str]) -> ValidationResult:
    result = check_required({"bankName": bank_name, "bankCountry": bank_country}, ACCESS_REQUIRED_FIELDS)
    if not result.valid:
        result.message = "Missing bankName or bankCountry"
        return result
    return check_country(bank_country)


def check_country(bank_country: str) -> ValidationResult:
    if normalize_country(bank_country) is None:
        return ValidationResult(valid=False, fields=["bankCountry"], message=f"Invalid bankCountry: {bank_country}")
    return ValidationResult(valid=True)


def normalize_country(country: Optional[str]) -> Optional[str]:
    """Upper-case a two-letter country code; None if it is not one."""
    if not country:
        return None
    code = country.strip().upper()
    if len(code) != 2 or not code.isalpha():
        return None
    return code


def to_decimal(amount: Any) -> Optional[Decimal]:
    if isinstance(amount, Decimal):
        return amount
    if isinstance(amount, bool):
        return None
    try:
        return Decimal(str(amount))
    except InvalidOperation:
        return None
