"""
Input validation for FSM text handlers — Pydantic v2 models.

Used to validate user-supplied text before writing to the database.
Keeps validation logic out of handler code and makes it trivially testable.

The `clean_*` functions validate one answer at a time so a form step can
re-ask immediately; they raise ValueError with a user-facing message. The
models run the same functions over a finished form.
"""
from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import List, Literal, Optional

from pydantic import BaseModel, ValidationError, field_validator, model_validator

# Letters (any script), with single spaces, apostrophes or hyphens between them
_NAME_RE = re.compile(r"^[^\W\d_]+(?:[\s'\-][^\W\d_]+)*$")
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
_PHONE_ALLOWED_RE = re.compile(r"^\+?[\d\s().\-]+$")
# Canadian postal code: A1A 1A1
_POSTAL_RE = re.compile(r"^[A-Z]\d[A-Z][ -]?\d[A-Z]\d$")

MAX_PRICE = Decimal("100000")

PROVINCES = (
    "AB", "BC", "MB", "NB", "NL", "NS", "NT", "NU", "ON", "PE", "QC", "SK", "YT",
)


# ── Single answers ────────────────────────────────────────────────────────────

def clean_name(v: str, label: str = "Name") -> str:
    v = " ".join(v.split())
    if len(v) < 2 or len(v) > 100:
        raise ValueError(f"{label} must be 2–100 characters long")
    if not _NAME_RE.match(v):
        raise ValueError(f"{label} may only contain letters, spaces, apostrophes and hyphens")
    return v


def clean_email(v: str) -> str:
    v = v.strip().lower()
    if len(v) > 255 or not _EMAIL_RE.match(v):
        raise ValueError("Enter a valid e-mail address")
    return v


def clean_password(v: str, min_length: int = 6) -> str:
    if len(v) < min_length:
        raise ValueError(f"Password must be at least {min_length} characters")
    return v


def clean_phone(v: str) -> str:
    v = v.strip()
    digits = sum(ch.isdigit() for ch in v)
    if not _PHONE_ALLOWED_RE.match(v) or not (10 <= digits <= 15):
        raise ValueError("Enter a phone number with 10–15 digits")
    return v


def clean_city(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 2 or len(v) > 120:
        raise ValueError("City must be 2–120 characters long")
    return v


def clean_street(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 3 or len(v) > 255:
        raise ValueError("Street address must be 3–255 characters long")
    return v


def clean_province(v: str) -> str:
    v = v.strip().upper()
    if v not in PROVINCES:
        raise ValueError("Use a two-letter province code, e.g. ON")
    return v


def clean_postal_code(v: str) -> str:
    v = v.strip().upper()
    if not _POSTAL_RE.match(v):
        raise ValueError("Postal code must look like A1A 1A1")
    return f"{v[:3]} {v[-3:]}"


def parse_birth_date(v: str, today: Optional[date] = None) -> date:
    today = today or date.today()
    try:
        born = date.fromisoformat(v.strip())
    except ValueError:
        raise ValueError("Use the YYYY-MM-DD format, e.g. 2012-05-31") from None
    if born > today:
        raise ValueError("Date of birth cannot be in the future")
    if today.year - born.year > 110:
        raise ValueError("Date of birth is too far in the past")
    return born


def parse_capacity(v: str) -> Optional[int]:
    """Blank or 0 means unlimited."""
    v = v.strip()
    if not v or v == "0":
        return None
    try:
        capacity = int(v)
    except ValueError:
        raise ValueError("Capacity must be a whole number") from None
    if capacity < 1 or capacity > 10_000:
        raise ValueError("Capacity must be between 1 and 10000")
    return capacity


def parse_date(v: str, label: str = "Date") -> date:
    try:
        return date.fromisoformat(v.strip())
    except ValueError:
        raise ValueError(f"{label}: use the YYYY-MM-DD format, e.g. 2026-09-01") from None


def parse_price(v: str) -> Decimal:
    """Blank or 0 means free."""
    v = v.strip().lstrip("$").replace(",", "")
    if not v:
        return Decimal("0")
    try:
        price = Decimal(v)
    except InvalidOperation:
        raise ValueError("Price must be a number, e.g. 150 or 149.99") from None
    if not price.is_finite() or price < 0 or price > MAX_PRICE:
        raise ValueError("Price must be between 0 and 100000")
    return price.quantize(Decimal("0.01"))


def clean_program_name(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 3 or len(v) > 255:
        raise ValueError("Program name must be 3–255 characters long")
    return v


def clean_description(v: str) -> Optional[str]:
    v = v.strip()
    if len(v) > 2000:
        raise ValueError("Description is limited to 2000 characters")
    return v or None


def clean_location(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 2 or len(v) > 255:
        raise ValueError("Location must be 2–255 characters long")
    return v


def clean_waiver(v: str) -> str:
    v = v.strip()
    if len(v) < 10 or len(v) > 4000:
        raise ValueError("Waiver text must be 10–4000 characters long")
    return v


def clean_question_label(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 2 or len(v) > 255:
        raise ValueError("Question must be 2–255 characters long")
    return v


def parse_options(v: str) -> List[str]:
    """Dropdown choices, one per line or separated by commas."""
    parts = re.split(r"[\n,]", v)
    options: List[str] = []
    for part in parts:
        option = " ".join(part.split())
        if option and option not in options:
            options.append(option)
    if len(options) < 2:
        raise ValueError("A dropdown needs at least two different options")
    if any(len(o) > 100 for o in options):
        raise ValueError("Each option is limited to 100 characters")
    return options


def clean_answer(v: str, max_length: int = 500) -> str:
    v = v.strip()
    if not v:
        raise ValueError("Please type an answer")
    if len(v) > max_length:
        raise ValueError(f"Answers are limited to {max_length} characters")
    return v


def first_error(exc: ValidationError) -> str:
    """User-facing text of the first pydantic error."""
    msg = exc.errors()[0]["msg"]
    return msg.removeprefix("Value error, ")


# ── Finished forms ────────────────────────────────────────────────────────────

class SignInData(BaseModel):
    email: str
    password: str

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return clean_email(v)


class SignUpData(SignInData):
    """
    Account sign-up payload.

    Attributes
    ----------
    first_name / last_name : account holder's names
    role                   : self-service role picked on the sign-up screen
    password               : at least `min_length` characters, repeated in confirm_password
    """

    first_name: str
    last_name: str
    role: Literal["participant", "parent_guardian", "coach", "volunteer"]
    confirm_password: str
    min_length: int = 6

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: str) -> str:
        return clean_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str) -> str:
        return clean_name(v, "Last name")

    @model_validator(mode="after")
    def validate_passwords(self) -> "SignUpData":
        clean_password(self.password, self.min_length)
        if self.password != self.confirm_password:
            raise ValueError("Passwords do not match")
        return self


class ProfileCompletionData(BaseModel):
    """Contact details collected by the profile completion wizard."""

    full_name: str
    phone: str
    street_address: Optional[str] = None
    city: str
    province: str
    postal_code: str

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, v: str) -> str:
        v = clean_name(v, "Full name")
        if len(v.split()) < 2:
            raise ValueError("Enter both first and last name")
        return v

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, v: str) -> str:
        return clean_phone(v)

    @field_validator("street_address")
    @classmethod
    def validate_street(cls, v: Optional[str]) -> Optional[str]:
        return clean_street(v) if v else None

    @field_validator("city")
    @classmethod
    def validate_city(cls, v: str) -> str:
        return clean_city(v)

    @field_validator("province")
    @classmethod
    def validate_province(cls, v: str) -> str:
        return clean_province(v)

    @field_validator("postal_code")
    @classmethod
    def validate_postal_code(cls, v: str) -> str:
        return clean_postal_code(v)

    @property
    def first_name(self) -> str:
        return self.full_name.split()[0]

    @property
    def last_name(self) -> str:
        return " ".join(self.full_name.split()[1:])

    def as_patch(self) -> dict:
        """Profile store patch for this form."""
        return {
            "first_name":     self.first_name,
            "last_name":      self.last_name,
            "phone":          self.phone,
            "street_address": self.street_address,
            "city":           self.city,
            "province":       self.province,
            "postal_code":    self.postal_code,
        }


class ParticipantData(BaseModel):
    first_name: str
    last_name: str
    date_of_birth: date
    gender: Literal["M", "F", "X"]

    @field_validator("first_name")
    @classmethod
    def validate_first_name(cls, v: str) -> str:
        return clean_name(v, "First name")

    @field_validator("last_name")
    @classmethod
    def validate_last_name(cls, v: str) -> str:
        return clean_name(v, "Last name")

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def validate_date_of_birth(cls, v):
        if isinstance(v, date):
            v = v.isoformat()
        return parse_birth_date(v)


class ProgramData(BaseModel):
    """
    Program fields from the admin creation wizard or edit screen.

    Attributes
    ----------
    start_date / end_date  : program dates, end on or after start
    registration_deadline  : last day to register, on or before start_date
    price                  : fee per participant, 0 = free
    capacity               : seat limit, None = unlimited
    """

    name: str
    description: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    registration_deadline: Optional[date] = None
    location: Optional[str] = None
    price: Decimal = Decimal("0")
    capacity: Optional[int] = None
    waiver_text: Optional[str] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_program_name(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return clean_description(v) if v is not None else None

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: Optional[str]) -> Optional[str]:
        return clean_location(v) if v and v.strip() else None

    @field_validator("waiver_text")
    @classmethod
    def validate_waiver(cls, v: Optional[str]) -> Optional[str]:
        return clean_waiver(v) if v and v.strip() else None

    @field_validator("price", mode="before")
    @classmethod
    def default_price(cls, v):
        return Decimal("0") if v is None or v == "" else v

    @field_validator("price")
    @classmethod
    def validate_price(cls, v: Decimal) -> Decimal:
        if v < 0 or v > MAX_PRICE:
            raise ValueError("Price must be between 0 and 100000")
        return v

    @field_validator("capacity")
    @classmethod
    def validate_capacity(cls, v: Optional[int]) -> Optional[int]:
        if v is None:
            return None
        if v < 1 or v > 10_000:
            raise ValueError("Capacity must be between 1 and 10000")
        return v

    @model_validator(mode="after")
    def validate_dates(self) -> "ProgramData":
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("End date must be after start date")
        if self.start_date and self.registration_deadline and self.registration_deadline > self.start_date:
            raise ValueError("Registration deadline must be before the start date")
        return self


class QuestionData(BaseModel):
    """A custom registration question added from the admin panel."""

    label: str
    kind: Literal["text", "select", "checkbox"]
    required: bool = False
    options: Optional[List[str]] = None

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        return clean_question_label(v)

    @model_validator(mode="after")
    def validate_options(self) -> "QuestionData":
        if self.kind == "select":
            if not self.options or len(self.options) < 2:
                raise ValueError("A dropdown needs at least two different options")
        else:
            self.options = None
        return self
