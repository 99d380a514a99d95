"""
ORM models for the club registration system.

Domain overview
---------------
Account         — e-mail/password login (the auth backend's user row)
  └─ AccountSession — issued session token, bound to one Telegram chat
Profile         — one row per Account: role + contact fields that gate access
  └─ Participant    — a person the account holder registers (self or child)
       └─ Registration — participant signed up for a Program
Program         — a season program / camp / clinic open for registration
  └─ ProgramQuestion — extra question asked when registering for the program
"""
from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    JSON,
    Numeric,
    String,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from clubreg.models.base import Base

# ─────────────────────────── Constants ────────────────────────────────────────

class Role:
    PARTICIPANT     = "participant"
    PARENT_GUARDIAN = "parent_guardian"
    COACH           = "coach"
    VOLUNTEER       = "volunteer"
    ADMIN           = "admin"

    ALL = (PARTICIPANT, PARENT_GUARDIAN, COACH, VOLUNTEER, ADMIN)

    # Roles a user may pick for themselves at sign-up
    SELF_SERVICE = (PARTICIPANT, PARENT_GUARDIAN, COACH, VOLUNTEER)

    LABELS = {
        PARTICIPANT:     "Player (registering myself)",
        PARENT_GUARDIAN: "Parent/Guardian (registering my child)",
        COACH:           "Coach",
        VOLUNTEER:       "Volunteer",
        ADMIN:           "Administrator",
    }


class RegistrationStatus:
    PENDING   = "pending"
    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"

    EMOJI = {
        PENDING:   "⚪️",
        CONFIRMED: "✅",
        CANCELLED: "❌",
    }


class QuestionKind:
    TEXT     = "text"
    SELECT   = "select"
    CHECKBOX = "checkbox"

    ALL = (TEXT, SELECT, CHECKBOX)

    LABELS = {
        TEXT:     "Text",
        SELECT:   "Dropdown",
        CHECKBOX: "Checkbox",
    }


class Gender:
    MALE   = "M"
    FEMALE = "F"
    OTHER  = "X"

    LABELS = {
        MALE:   "Male",
        FEMALE: "Female",
        OTHER:  "Other / prefer not to say",
    }


# ─────────────────────────── Models ───────────────────────────────────────────

class Account(Base):
    """E-mail/password login owned by the auth backend."""
    __tablename__ = "accounts"

    id:            Mapped[str]           = mapped_column(String(36), primary_key=True)
    email:         Mapped[str]           = mapped_column(String(255), unique=True, index=True)
    password_salt: Mapped[str]           = mapped_column(String(64))
    password_hash: Mapped[str]           = mapped_column(String(128))
    # Sign-up metadata (role hint, names) handed to the profile on first sight
    role_hint:     Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    first_name:    Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name:     Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at:    Mapped[datetime]      = mapped_column(DateTime, default=func.now())

    sessions: Mapped[List["AccountSession"]] = relationship(
        back_populates="account", cascade="all, delete-orphan"
    )


class AccountSession(Base):
    """Session token issued to one Telegram chat."""
    __tablename__ = "account_sessions"

    token:      Mapped[str]                = mapped_column(String(128), primary_key=True)
    account_id: Mapped[str]                = mapped_column(ForeignKey("accounts.id"))
    client_id:  Mapped[int]                = mapped_column(BigInteger, index=True)   # telegram_id
    created_at: Mapped[datetime]           = mapped_column(DateTime, default=func.now())
    expires_at: Mapped[datetime]           = mapped_column(DateTime)
    revoked_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    account: Mapped["Account"] = relationship(back_populates="sessions")


class Profile(Base):
    """Role and contact data for one account; created lazily on first sign-in."""
    __tablename__ = "profiles"

    id:             Mapped[str]           = mapped_column(String(36), primary_key=True)  # = accounts.id
    email:          Mapped[str]           = mapped_column(String(255))
    role:           Mapped[str]           = mapped_column(String(30), default=Role.PARTICIPANT)
    first_name:     Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    last_name:      Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone:          Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    street_address: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    city:           Mapped[Optional[str]] = mapped_column(String(120), nullable=True)
    province:       Mapped[Optional[str]] = mapped_column(String(60), nullable=True)
    postal_code:    Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    country:        Mapped[str]           = mapped_column(String(60), default="Canada")
    created_at:     Mapped[datetime]      = mapped_column(DateTime, default=func.now())
    updated_at:     Mapped[datetime]      = mapped_column(DateTime, default=func.now(), onupdate=func.now())

    participants: Mapped[List["Participant"]] = relationship(
        back_populates="profile", cascade="all, delete-orphan"
    )

    @property
    def display_name(self) -> str:
        parts = [p for p in (self.first_name, self.last_name) if p]
        return " ".join(parts) or self.email


class Program(Base):
    """A program (season, camp, clinic) participants can register for."""
    __tablename__ = "programs"

    id:                    Mapped[int]            = mapped_column(Integer, primary_key=True, autoincrement=True)
    name:                  Mapped[str]            = mapped_column(String(255))
    description:           Mapped[Optional[str]]  = mapped_column(String(2000), nullable=True)
    start_date:            Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    end_date:              Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    registration_deadline: Mapped[Optional[date]] = mapped_column(Date, nullable=True)   # last day to register
    location:              Mapped[Optional[str]]  = mapped_column(String(255), nullable=True)
    price:                 Mapped[Decimal]        = mapped_column(Numeric(10, 2), default=Decimal("0"))
    capacity:              Mapped[Optional[int]]  = mapped_column(Integer, nullable=True)   # None = unlimited
    waiver_text:           Mapped[Optional[str]]  = mapped_column(String(4000), nullable=True)
    is_active:             Mapped[bool]           = mapped_column(Boolean, default=True)
    created_at:            Mapped[datetime]       = mapped_column(DateTime, default=func.now())

    registrations: Mapped[List["Registration"]] = relationship(
        back_populates="program", cascade="all, delete-orphan"
    )
    questions: Mapped[List["ProgramQuestion"]] = relationship(
        back_populates="program",
        cascade="all, delete-orphan",
        order_by="ProgramQuestion.position",
    )

    @property
    def status_emoji(self) -> str:
        return "🟢" if self.is_active else "⏸"

    @property
    def price_label(self) -> str:
        if not self.price:
            return "Free"
        return f"${self.price:,.2f}"

    def deadline_passed(self, today: Optional[date] = None) -> bool:
        if self.registration_deadline is None:
            return False
        return (today or date.today()) > self.registration_deadline

    def registration_open(self, today: Optional[date] = None) -> bool:
        return self.is_active and not self.deadline_passed(today)


class ProgramQuestion(Base):
    """An extra question shown on the program's registration form."""
    __tablename__ = "program_questions"

    id:         Mapped[int]                 = mapped_column(Integer, primary_key=True, autoincrement=True)
    program_id: Mapped[int]                 = mapped_column(ForeignKey("programs.id"), index=True)
    position:   Mapped[int]                 = mapped_column(Integer, default=0)
    label:      Mapped[str]                 = mapped_column(String(255))
    kind:       Mapped[str]                 = mapped_column(String(20), default=QuestionKind.TEXT)
    required:   Mapped[bool]                = mapped_column(Boolean, default=False)
    options:    Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)   # SELECT only

    program: Mapped["Program"] = relationship(back_populates="questions")

    @property
    def kind_label(self) -> str:
        return QuestionKind.LABELS.get(self.kind, self.kind)


class Participant(Base):
    """A person registered under an account (the holder or a dependant)."""
    __tablename__ = "participants"

    id:                Mapped[int]            = mapped_column(Integer, primary_key=True, autoincrement=True)
    profile_id:        Mapped[str]            = mapped_column(ForeignKey("profiles.id"), index=True)
    first_name:        Mapped[str]            = mapped_column(String(255))
    last_name:         Mapped[str]            = mapped_column(String(255))
    date_of_birth:     Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    gender:            Mapped[Optional[str]]  = mapped_column(String(5), nullable=True)   # Gender.*
    is_account_holder: Mapped[bool]           = mapped_column(Boolean, default=False)
    created_at:        Mapped[datetime]       = mapped_column(DateTime, default=func.now())

    profile:       Mapped["Profile"]            = relationship(back_populates="participants")
    registrations: Mapped[List["Registration"]] = relationship(
        back_populates="participant", cascade="all, delete-orphan"
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class Registration(Base):
    """A participant's sign-up for a program."""
    __tablename__ = "registrations"
    __table_args__ = (
        UniqueConstraint("participant_id", "program_id", name="uq_registration_participant_program"),
    )

    id:                 Mapped[int]                      = mapped_column(Integer, primary_key=True, autoincrement=True)
    participant_id:     Mapped[int]                      = mapped_column(ForeignKey("participants.id"))
    program_id:         Mapped[int]                      = mapped_column(ForeignKey("programs.id"))
    status:             Mapped[str]                      = mapped_column(String(20), default=RegistrationStatus.PENDING)
    # question id (as text) → answer; checkbox answers are "yes" / "no"
    answers:            Mapped[Optional[Dict[str, str]]] = mapped_column(JSON, nullable=True)
    waiver_accepted_at: Mapped[Optional[datetime]]       = mapped_column(DateTime, nullable=True)
    registered_at:      Mapped[datetime]                 = mapped_column(DateTime, default=func.now())

    participant: Mapped["Participant"] = relationship(back_populates="registrations")
    program:     Mapped["Program"]     = relationship(back_populates="registrations")

    @property
    def status_emoji(self) -> str:
        return RegistrationStatus.EMOJI.get(self.status, "❓")
