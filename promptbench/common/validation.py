"""Field validators for account and payment forms.

Every validator returns a ValidationResult listing all problems found rather
than raising, so a form can report every invalid field at once.
"""

import re
from datetime import date
from urllib.parse import urlparse

from pydantic import BaseModel, Field

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_-]+$")
CARD_NUMBER_PATTERN = re.compile(r"^\d{13,19}$")
EXPIRY_PATTERN = re.compile(r"^(\d{2})/(\d{2})$")
CVV_PATTERN = re.compile(r"^\d{3,4}$")

PASSWORD_MIN_LENGTH = 6
PASSWORD_MAX_LENGTH = 128
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30
PHONE_MIN_DIGITS = 10
PHONE_MAX_DIGITS = 15
MAX_EXPIRY_YEARS_AHEAD = 20


class ValidationResult(BaseModel):
    is_valid: bool
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def from_errors(cls, errors: list[str]) -> "ValidationResult":
        return cls(is_valid=not errors, errors=errors)


class BillingAddress(BaseModel):
    street: str = ""
    city: str = ""
    state: str = ""
    zip_code: str = ""
    country: str = ""


class PaymentForm(BaseModel):
    card_number: str = ""
    expiry_date: str = ""
    cvv: str = ""
    cardholder_name: str = ""
    billing_address: BillingAddress = Field(default_factory=BillingAddress)


def validate_email(email: str) -> ValidationResult:
    errors: list[str] = []
    if not email:
        errors.append("Email is required")
    elif not EMAIL_PATTERN.match(email):
        errors.append("Please enter a valid email address")
    return ValidationResult.from_errors(errors)


def validate_password(password: str) -> ValidationResult:
    errors: list[str] = []
    if not password:
        errors.append("Password is required")
    else:
        if len(password) < PASSWORD_MIN_LENGTH:
            errors.append(f"Password must be at least {PASSWORD_MIN_LENGTH} characters long")
        if len(password) > PASSWORD_MAX_LENGTH:
            errors.append(f"Password must be less than {PASSWORD_MAX_LENGTH} characters")
    return ValidationResult.from_errors(errors)


def validate_username(username: str) -> ValidationResult:
    errors: list[str] = []
    if not username:
        errors.append("Username is required")
    else:
        if len(username) < USERNAME_MIN_LENGTH:
            errors.append(f"Username must be at least {USERNAME_MIN_LENGTH} characters long")
        if len(username) > USERNAME_MAX_LENGTH:
            errors.append(f"Username must be less than {USERNAME_MAX_LENGTH} characters")
        if not USERNAME_PATTERN.match(username):
            errors.append("Username can only contain letters, numbers, hyphens, and underscores")
    return ValidationResult.from_errors(errors)


def luhn_checksum_valid(digits: str) -> bool:
    """Check a digit string against the Luhn (mod 10) checksum.

    Starting from the rightmost digit, every second digit is doubled and
    9 is subtracted from any result above 9; the total must be a multiple of 10.

    Example:
        >>> luhn_checksum_valid("4111111111111111")
        True
        >>> luhn_checksum_valid("4111111111111112")
        False
    """
    total = 0
    for position, char in enumerate(reversed(digits)):
        n = int(char)
        if position % 2 == 1:
            n *= 2
            if n > 9:
                n -= 9
        total += n
    return total % 10 == 0


def validate_card_number(card_number: str) -> ValidationResult:
    errors: list[str] = []
    clean_number = re.sub(r"\s+", "", card_number or "")

    if not clean_number:
        errors.append("Card number is required")
    elif not CARD_NUMBER_PATTERN.match(clean_number):
        errors.append("Card number must be 13-19 digits")
    elif not luhn_checksum_valid(clean_number):
        errors.append("Invalid card number")
    return ValidationResult.from_errors(errors)


def validate_expiry_date(expiry_date: str, today: date | None = None) -> ValidationResult:
    """Validate an MM/YY expiry date.

    A card is valid through the whole of its expiry month.
    """
    errors: list[str] = []
    today = today or date.today()

    if not expiry_date:
        errors.append("Expiry date is required")
        return ValidationResult.from_errors(errors)

    match = EXPIRY_PATTERN.match(expiry_date)
    if not match:
        errors.append("Expiry date must be in MM/YY format")
        return ValidationResult.from_errors(errors)

    month = int(match.group(1))
    year = int(match.group(2)) + 2000

    if month < 1 or month > 12:
        errors.append("Invalid month")
    elif (year, month) < (today.year, today.month):
        errors.append("Card has expired")
    elif year > today.year + MAX_EXPIRY_YEARS_AHEAD:
        errors.append("Invalid expiry year")
    return ValidationResult.from_errors(errors)


def validate_cvv(cvv: str) -> ValidationResult:
    errors: list[str] = []
    if not cvv:
        errors.append("CVV is required")
    elif not CVV_PATTERN.match(cvv):
        errors.append("CVV must be 3 or 4 digits")
    return ValidationResult.from_errors(errors)


def validate_required(value: str, field_name: str) -> ValidationResult:
    errors: list[str] = []
    if not value or not value.strip():
        errors.append(f"{field_name} is required")
    return ValidationResult.from_errors(errors)


def validate_payment_form(form: PaymentForm, today: date | None = None) -> ValidationResult:
    """Validate every field of a payment form and collect all errors in field order."""
    address = form.billing_address
    results = [
        validate_card_number(form.card_number),
        validate_expiry_date(form.expiry_date, today=today),
        validate_cvv(form.cvv),
        validate_required(form.cardholder_name, "Cardholder name"),
        validate_required(address.street, "Street address"),
        validate_required(address.city, "City"),
        validate_required(address.state, "State"),
        validate_required(address.zip_code, "ZIP code"),
        validate_required(address.country, "Country"),
    ]
    errors = [error for result in results for error in result.errors]
    return ValidationResult.from_errors(errors)


def sanitize_input(value: str) -> str:
    """Strip angle brackets and surrounding whitespace.

    Example:
        >>> sanitize_input("  <b>hello</b> ")
        'bhello/b'
    """
    return re.sub(r"[<>]", "", value).strip()


def validate_url(url: str) -> ValidationResult:
    errors: list[str] = []
    if not url:
        errors.append("URL is required")
    else:
        parsed = urlparse(url)
        if not parsed.scheme or not (parsed.netloc or parsed.path):
            errors.append("Please enter a valid URL")
    return ValidationResult.from_errors(errors)


def validate_phone_number(phone: str) -> ValidationResult:
    errors: list[str] = []
    if not phone:
        errors.append("Phone number is required")
    else:
        digits = re.sub(r"\D", "", phone)
        if len(digits) < PHONE_MIN_DIGITS or len(digits) > PHONE_MAX_DIGITS:
            errors.append("Please enter a valid phone number")
    return ValidationResult.from_errors(errors)
