"""
Registration service — database operations for programs, participants and
program registrations.

All functions receive an AsyncSession parameter and are intentionally
pure async functions (no class coupling) for easy unit testing.
"""
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from clubreg.models.models import (
    Participant,
    Profile,
    Program,
    ProgramQuestion,
    QuestionKind,
    Registration,
    RegistrationStatus,
)


# ── Profiles ──────────────────────────────────────────────────────────────────

async def count_profiles(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(Profile.id)))
    return int(result.scalar_one())


# ── Participants ──────────────────────────────────────────────────────────────

async def add_participant(
    session: AsyncSession,
    profile_id: str,
    first_name: str,
    last_name: str,
    date_of_birth: Optional[date] = None,
    gender: Optional[str] = None,
    is_account_holder: bool = False,
) -> Participant:
    p = Participant(
        profile_id=profile_id,
        first_name=first_name,
        last_name=last_name,
        date_of_birth=date_of_birth,
        gender=gender,
        is_account_holder=is_account_holder,
    )
    session.add(p)
    await session.flush()
    return p


async def ensure_account_holder(
    session: AsyncSession,
    profile_id: str,
    first_name: str,
    last_name: str,
) -> Participant:
    """Create or rename the participant record that stands for the account holder."""
    result = await session.execute(
        select(Participant).where(
            Participant.profile_id == profile_id,
            Participant.is_account_holder.is_(True),
        )
    )
    holder = result.scalar_one_or_none()
    if holder is None:
        return await add_participant(
            session, profile_id, first_name, last_name, is_account_holder=True
        )
    holder.first_name = first_name
    holder.last_name  = last_name
    return holder


async def get_participant(session: AsyncSession, participant_id: int) -> Optional[Participant]:
    result = await session.execute(
        select(Participant)
        .where(Participant.id == participant_id)
        .options(selectinload(Participant.registrations).selectinload(Registration.program))
    )
    return result.scalar_one_or_none()


async def list_participants(session: AsyncSession, profile_id: str) -> List[Participant]:
    result = await session.execute(
        select(Participant)
        .where(Participant.profile_id == profile_id)
        .order_by(Participant.is_account_holder.desc(), Participant.first_name)
    )
    return list(result.scalars().all())


async def count_participants(session: AsyncSession) -> int:
    result = await session.execute(select(func.count(Participant.id)))
    return int(result.scalar_one())


async def count_participants_for(session: AsyncSession, profile_id: str) -> int:
    result = await session.execute(
        select(func.count(Participant.id)).where(Participant.profile_id == profile_id)
    )
    return int(result.scalar_one())


# ── Programs ──────────────────────────────────────────────────────────────────

PROGRAM_FIELDS = (
    "name",
    "description",
    "start_date",
    "end_date",
    "registration_deadline",
    "location",
    "price",
    "capacity",
    "waiver_text",
)


async def create_program(
    session: AsyncSession,
    name: str,
    description: Optional[str] = None,
    capacity: Optional[int] = None,
    **details: Any,
) -> Program:
    """`details` are any other PROGRAM_FIELDS (dates, location, price, waiver_text)."""
    unknown = set(details) - set(PROGRAM_FIELDS)
    if unknown:
        raise ValueError(f"Unknown program fields: {', '.join(sorted(unknown))}")
    program = Program(name=name, description=description, capacity=capacity, **details)
    session.add(program)
    await session.flush()
    return program


async def update_program(session: AsyncSession, program_id: int, **fields: Any) -> Optional[Program]:
    """Set the given PROGRAM_FIELDS; returns None when the program does not exist."""
    unknown = set(fields) - set(PROGRAM_FIELDS)
    if unknown:
        raise ValueError(f"Unknown program fields: {', '.join(sorted(unknown))}")
    program = await get_program(session, program_id)
    if program is None:
        return None
    for key, value in fields.items():
        setattr(program, key, value)
    await session.flush()
    return program


async def get_program(session: AsyncSession, program_id: int) -> Optional[Program]:
    return await session.get(Program, program_id)


async def list_programs(session: AsyncSession, active_only: bool = False) -> List[Program]:
    q = select(Program).order_by(Program.created_at.desc(), Program.id.desc())
    if active_only:
        q = q.where(Program.is_active.is_(True))
    result = await session.execute(q)
    return list(result.scalars().all())


async def set_program_active(session: AsyncSession, program_id: int, is_active: bool) -> None:
    await session.execute(
        update(Program)
        .where(Program.id == program_id)
        .values(is_active=is_active)
    )


async def count_taken_seats(session: AsyncSession, program_id: int) -> int:
    """Registrations that hold a seat (anything not cancelled)."""
    result = await session.execute(
        select(func.count(Registration.id)).where(
            Registration.program_id == program_id,
            Registration.status != RegistrationStatus.CANCELLED,
        )
    )
    return int(result.scalar_one())


# ── Program questions ─────────────────────────────────────────────────────────

async def list_program_questions(session: AsyncSession, program_id: int) -> List[ProgramQuestion]:
    result = await session.execute(
        select(ProgramQuestion)
        .where(ProgramQuestion.program_id == program_id)
        .order_by(ProgramQuestion.position, ProgramQuestion.id)
    )
    return list(result.scalars().all())


async def add_program_question(
    session: AsyncSession,
    program_id: int,
    label: str,
    kind: str = QuestionKind.TEXT,
    required: bool = False,
    options: Optional[List[str]] = None,
) -> ProgramQuestion:
    """Append a question after the program's existing ones."""
    result = await session.execute(
        select(func.max(ProgramQuestion.position)).where(ProgramQuestion.program_id == program_id)
    )
    last = result.scalar_one_or_none()
    question = ProgramQuestion(
        program_id=program_id,
        position=(last + 1) if last is not None else 0,
        label=label,
        kind=kind,
        required=required,
        options=options if kind == QuestionKind.SELECT else None,
    )
    session.add(question)
    await session.flush()
    return question


async def delete_program_question(session: AsyncSession, question_id: int) -> bool:
    result = await session.execute(delete(ProgramQuestion).where(ProgramQuestion.id == question_id))
    return result.rowcount > 0


def check_answers(questions: List[ProgramQuestion], answers: Dict[str, str]) -> str:
    """
    Return the first problem with `answers` ("" when they are acceptable).

    Answers are keyed by question id as text. A required question needs a
    non-empty answer, and a required checkbox must be ticked ("yes").
    """
    for question in questions:
        value = (answers.get(str(question.id)) or "").strip()
        if question.kind == QuestionKind.CHECKBOX:
            if question.required and value != "yes":
                return f"Please answer: {question.label}"
            continue
        if not value:
            if question.required:
                return f"Please answer: {question.label}"
            continue
        if question.kind == QuestionKind.SELECT and value not in (question.options or []):
            return f"Pick one of the listed options for: {question.label}"
    return ""


# ── Registrations ─────────────────────────────────────────────────────────────

async def _eligibility(
    session: AsyncSession,
    program_id: int,
    participant_id: int,
    profile_id: str,
    today: Optional[date],
) -> Tuple[Optional[Program], Optional[Registration], str]:
    program = await get_program(session, program_id)
    if program is None:
        return None, None, "Program not found."
    if not program.is_active:
        return None, None, "Registration for this program is closed."
    if program.deadline_passed(today):
        return None, None, "The registration deadline for this program has passed."

    participant = await session.get(Participant, participant_id)
    if participant is None or participant.profile_id != profile_id:
        return None, None, "Participant not found."

    existing = await session.execute(
        select(Registration).where(
            Registration.program_id == program_id,
            Registration.participant_id == participant_id,
        )
    )
    registration = existing.scalar_one_or_none()
    if registration is not None and registration.status != RegistrationStatus.CANCELLED:
        return None, None, f"{participant.full_name} is already registered for this program."

    if program.capacity is not None:
        taken = await count_taken_seats(session, program_id)
        if taken >= program.capacity:
            return None, None, "This program is full."
    return program, registration, ""


async def check_eligibility(
    session: AsyncSession,
    program_id: int,
    participant_id: int,
    profile_id: str,
    today: Optional[date] = None,
) -> str:
    """Why the participant cannot register right now ("" if they can)."""
    _, _, error = await _eligibility(session, program_id, participant_id, profile_id, today)
    return error


async def register_for_program(
    session: AsyncSession,
    program_id: int,
    participant_id: int,
    profile_id: str,
    answers: Optional[Dict[str, str]] = None,
    waiver_accepted: bool = False,
    today: Optional[date] = None,
) -> Tuple[Optional[Registration], str]:
    """
    Register a participant for a program.
    Returns (registration, "") on success or (None, error_message) on failure.

    Programs with waiver text need `waiver_accepted`; programs with custom
    questions need `answers` that pass check_answers().
    """
    program, registration, error = await _eligibility(
        session, program_id, participant_id, profile_id, today
    )
    if error:
        return None, error

    questions = await list_program_questions(session, program_id)
    answers = {k: v for k, v in (answers or {}).items() if v}
    problem = check_answers(questions, answers)
    if problem:
        return None, problem
    if program.waiver_text and not waiver_accepted:
        return None, "Please accept the waiver agreement."

    accepted_at = datetime.utcnow() if program.waiver_text else None
    if registration is not None:
        # Re-registering after a cancellation reuses the row
        registration.status             = RegistrationStatus.PENDING
        registration.answers            = answers or None
        registration.waiver_accepted_at = accepted_at
    else:
        registration = Registration(
            program_id=program_id,
            participant_id=participant_id,
            answers=answers or None,
            waiver_accepted_at=accepted_at,
        )
        session.add(registration)
    await session.flush()
    return registration, ""


async def get_registration(session: AsyncSession, registration_id: int) -> Optional[Registration]:
    result = await session.execute(
        select(Registration)
        .where(Registration.id == registration_id)
        .options(
            selectinload(Registration.participant).selectinload(Participant.profile),
            selectinload(Registration.program),
        )
    )
    return result.scalar_one_or_none()


async def list_registrations_for_profile(session: AsyncSession, profile_id: str) -> List[Registration]:
    result = await session.execute(
        select(Registration)
        .join(Participant, Registration.participant_id == Participant.id)
        .where(Participant.profile_id == profile_id)
        .options(
            selectinload(Registration.participant),
            selectinload(Registration.program),
        )
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
    )
    return list(result.scalars().all())


async def list_registrations(
    session: AsyncSession,
    program_id: Optional[int] = None,
    status: Optional[str] = None,
) -> List[Registration]:
    q = (
        select(Registration)
        .options(
            selectinload(Registration.participant).selectinload(Participant.profile),
            selectinload(Registration.program),
        )
        .order_by(Registration.registered_at.desc(), Registration.id.desc())
    )
    if program_id is not None:
        q = q.where(Registration.program_id == program_id)
    if status:
        q = q.where(Registration.status == status)
    result = await session.execute(q)
    return list(result.scalars().all())


async def update_registration_status(
    session: AsyncSession,
    registration_id: int,
    status: str,
) -> None:
    await session.execute(
        update(Registration)
        .where(Registration.id == registration_id)
        .values(status=status)
    )


async def registration_stats(session: AsyncSession) -> Dict[str, int]:
    """Registration counts per status, every status present (zero if none)."""
    result = await session.execute(
        select(Registration.status, func.count(Registration.id)).group_by(Registration.status)
    )
    stats = {
        RegistrationStatus.PENDING:   0,
        RegistrationStatus.CONFIRMED: 0,
        RegistrationStatus.CANCELLED: 0,
    }
    for status, count in result.all():
        stats[status] = int(count)
    return stats
