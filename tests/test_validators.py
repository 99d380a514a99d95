"""
Unit tests — Input validation (validators.py).

Tests the single-answer cleaners used by form steps and the Pydantic v2
models run over finished forms:
  - SignUpData: names, e-mail, password length and confirmation
  - ProfileCompletionData: full name split, phone, province, postal code
  - ParticipantData / ProgramData: dates, price, capacity
  - QuestionData: dropdown options

All tests are synchronous; no database session required.
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest
from pydantic import ValidationError

from clubreg.validators import (
    ParticipantData,
    ProfileCompletionData,
    ProgramData,
    QuestionData,
    SignUpData,
    clean_email,
    clean_name,
    clean_phone,
    clean_postal_code,
    clean_province,
    first_error,
    parse_birth_date,
    parse_capacity,
    parse_date,
    parse_options,
    parse_price,
)


def sign_up(**kwargs) -> SignUpData:
    data = dict(
        email="pat@club.test",
        password="secret1",
        confirm_password="secret1",
        first_name="Pat",
        last_name="Lee",
        role="parent_guardian",
    )
    data.update(kwargs)
    return SignUpData(**data)


def profile_form(**kwargs) -> ProfileCompletionData:
    data = dict(
        full_name="Jordan Smith",
        phone="416-555-0100",
        city="Toronto",
        province="on",
        postal_code="m5v2t6",
    )
    data.update(kwargs)
    return ProfileCompletionData(**data)


# ─────────────────────────── Single answers ───────────────────────────────────

class TestCleanName:

    @pytest.mark.parametrize("raw, clean", [
        ("Jordan", "Jordan"),
        ("  Mary   Ann ", "Mary Ann"),
        ("O'Neil", "O'Neil"),
        ("Smith-Jones", "Smith-Jones"),
        ("Zoë", "Zoë"),
    ])
    def test_accepts(self, raw, clean) -> None:
        assert clean_name(raw) == clean

    @pytest.mark.parametrize("raw", ["J", "R2D2", "Anna--Marie", "x" * 101, "<b>Bob</b>"])
    def test_rejects(self, raw) -> None:
        with pytest.raises(ValueError):
            clean_name(raw)

    def test_label_in_message(self) -> None:
        with pytest.raises(ValueError, match="Last name"):
            clean_name("1", "Last name")


class TestCleanContact:

    def test_email_is_lowercased(self) -> None:
        assert clean_email(" Pat@Club.TEST ") == "pat@club.test"

    @pytest.mark.parametrize("raw", ["pat", "pat@club", "pat @club.test", "@club.test"])
    def test_bad_email(self, raw) -> None:
        with pytest.raises(ValueError):
            clean_email(raw)

    @pytest.mark.parametrize("raw", ["416-555-0100", "+1 (416) 555 0100", "4165550100"])
    def test_phone_ok(self, raw) -> None:
        assert clean_phone(raw) == raw

    @pytest.mark.parametrize("raw", ["555-0100", "phone me", "+1 416 555 0100 ext 2"])
    def test_phone_rejected(self, raw) -> None:
        with pytest.raises(ValueError):
            clean_phone(raw)

    def test_province(self) -> None:
        assert clean_province(" qc ") == "QC"
        with pytest.raises(ValueError):
            clean_province("Ontario")

    @pytest.mark.parametrize("raw", ["m5v2t6", "M5V 2T6", "m5v-2t6"])
    def test_postal_code_is_formatted(self, raw) -> None:
        assert clean_postal_code(raw) == "M5V 2T6"

    def test_postal_code_rejected(self) -> None:
        with pytest.raises(ValueError):
            clean_postal_code("12345")


class TestParsers:

    def test_birth_date(self) -> None:
        assert parse_birth_date("2012-05-31", today=date(2026, 1, 1)) == date(2012, 5, 31)

    @pytest.mark.parametrize("raw", ["31.05.2012", "2012-13-01", "2027-01-01", "1900-01-01"])
    def test_birth_date_rejected(self, raw) -> None:
        with pytest.raises(ValueError):
            parse_birth_date(raw, today=date(2026, 1, 1))

    @pytest.mark.parametrize("raw, value", [("", None), ("0", None), (" 25 ", 25)])
    def test_capacity(self, raw, value) -> None:
        assert parse_capacity(raw) == value

    @pytest.mark.parametrize("raw", ["-3", "ten", "10001"])
    def test_capacity_rejected(self, raw) -> None:
        with pytest.raises(ValueError):
            parse_capacity(raw)

    def test_date(self) -> None:
        assert parse_date(" 2026-09-01 ") == date(2026, 9, 1)

    def test_date_message_names_the_field(self) -> None:
        with pytest.raises(ValueError, match="Start date"):
            parse_date("Sept 1", "Start date")

    @pytest.mark.parametrize("raw, value", [
        ("", Decimal("0")),
        ("150", Decimal("150.00")),
        ("$1,299.5", Decimal("1299.50")),
    ])
    def test_price(self, raw, value) -> None:
        assert parse_price(raw) == value

    @pytest.mark.parametrize("raw", ["-5", "free", "100001", "NaN"])
    def test_price_rejected(self, raw) -> None:
        with pytest.raises(ValueError):
            parse_price(raw)

    def test_options_split_and_deduplicated(self) -> None:
        assert parse_options("S, M\nL, M ,") == ["S", "M", "L"]

    def test_single_option_rejected(self) -> None:
        with pytest.raises(ValueError):
            parse_options("Only, Only")


# ─────────────────────────── Forms ────────────────────────────────────────────

class TestSignUpData:

    def test_valid(self) -> None:
        data = sign_up(email="PAT@club.test")
        assert data.email == "pat@club.test"
        assert data.role == "parent_guardian"

    def test_admin_role_not_selectable(self) -> None:
        with pytest.raises(ValidationError):
            sign_up(role="admin")

    def test_short_password(self) -> None:
        with pytest.raises(ValidationError) as exc:
            sign_up(password="abc", confirm_password="abc")
        assert first_error(exc.value) == "Password must be at least 6 characters"

    def test_configurable_min_length(self) -> None:
        with pytest.raises(ValidationError):
            sign_up(password="secret1", confirm_password="secret1", min_length=10)

    def test_mismatched_confirmation(self) -> None:
        with pytest.raises(ValidationError) as exc:
            sign_up(confirm_password="secret2")
        assert first_error(exc.value) == "Passwords do not match"


class TestProfileCompletionData:

    def test_valid_and_normalised(self) -> None:
        form = profile_form()
        assert form.province == "ON"
        assert form.postal_code == "M5V 2T6"
        assert form.street_address is None

    def test_full_name_split(self) -> None:
        form = profile_form(full_name="Mary Ann Smith")
        assert form.first_name == "Mary"
        assert form.last_name == "Ann Smith"

    def test_single_word_name_rejected(self) -> None:
        with pytest.raises(ValidationError) as exc:
            profile_form(full_name="Jordan")
        assert first_error(exc.value) == "Enter both first and last name"

    def test_patch_covers_required_fields(self) -> None:
        patch = profile_form(street_address="12 King St W").as_patch()
        assert patch["first_name"] == "Jordan"
        assert patch["last_name"] == "Smith"
        assert patch["phone"] == "416-555-0100"
        assert patch["street_address"] == "12 King St W"


class TestParticipantData:

    def test_valid(self) -> None:
        data = ParticipantData(first_name="Aaron", last_name="Kim", date_of_birth="2014-03-01", gender="M")
        assert data.date_of_birth == date(2014, 3, 1)

    def test_bad_gender(self) -> None:
        with pytest.raises(ValidationError):
            ParticipantData(first_name="Aaron", last_name="Kim", date_of_birth="2014-03-01", gender="Q")


class TestProgramData:

    def test_blank_description_becomes_none(self) -> None:
        data = ProgramData(name="  Summer   Camp ", description="   ")
        assert data.name == "Summer Camp"
        assert data.description is None
        assert data.capacity is None

    def test_short_name(self) -> None:
        with pytest.raises(ValidationError):
            ProgramData(name="ab")

    def test_capacity_bounds(self) -> None:
        with pytest.raises(ValidationError):
            ProgramData(name="Clinic", capacity=0)

    def test_blank_price_is_free(self) -> None:
        assert ProgramData(name="Clinic", price=None).price == Decimal("0")
        assert ProgramData(name="Clinic", price="").price == Decimal("0")

    def test_end_before_start(self) -> None:
        with pytest.raises(ValidationError) as exc:
            ProgramData(name="Clinic", start_date=date(2026, 7, 10), end_date=date(2026, 7, 6))
        assert first_error(exc.value) == "End date must be after start date"

    def test_deadline_after_start(self) -> None:
        with pytest.raises(ValidationError) as exc:
            ProgramData(name="Clinic", start_date=date(2026, 7, 6), registration_deadline=date(2026, 7, 7))
        assert first_error(exc.value) == "Registration deadline must be before the start date"

    def test_blank_location_and_waiver_become_none(self) -> None:
        data = ProgramData(name="Clinic", location="  ", waiver_text="")
        assert data.location is None
        assert data.waiver_text is None


class TestQuestionData:

    def test_dropdown_needs_options(self) -> None:
        with pytest.raises(ValidationError):
            QuestionData(label="Jersey size", kind="select", options=["M"])

    def test_options_dropped_for_other_kinds(self) -> None:
        data = QuestionData(label="Photo consent", kind="checkbox", required=True, options=["a", "b"])
        assert data.options is None

    def test_unknown_kind(self) -> None:
        with pytest.raises(ValidationError):
            QuestionData(label="Favourite colour", kind="colour")
