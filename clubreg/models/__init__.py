from clubreg.models.base import Base, engine, AsyncSessionFactory
from clubreg.models.models import (
    Account,
    AccountSession,
    Profile,
    Program,
    ProgramQuestion,
    Participant,
    Registration,
    Role,
    RegistrationStatus,
    Gender,
    QuestionKind,
)

__all__ = [
    "Base",
    "engine",
    "AsyncSessionFactory",
    "Account",
    "AccountSession",
    "Profile",
    "Program",
    "ProgramQuestion",
    "Participant",
    "Registration",
    "Role",
    "RegistrationStatus",
    "Gender",
    "QuestionKind",
]
