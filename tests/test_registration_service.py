"""
Integration tests — registration service CRUD against in-memory SQLite.

Coverage:
  - Participants: account holder upsert, ordering, per-profile counts
  - Programs: creation, active filter, toggling
  - Registrations: ownership, duplicates, capacity, re-registration, stats
  - Program details: dates, price, deadline, editing
  - Custom questions and waiver acceptance
"""
from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from clubreg.models.models import Profile, ProgramQuestion, QuestionKind, RegistrationStatus
from clubreg.services.registration_service import (
    add_participant,
    add_program_question,
    check_answers,
    check_eligibility,
    count_participants_for,
    count_profiles,
    count_taken_seats,
    create_program,
    delete_program_question,
    ensure_account_holder,
    get_registration,
    list_participants,
    list_program_questions,
    list_programs,
    list_registrations,
    list_registrations_for_profile,
    register_for_program,
    registration_stats,
    set_program_active,
    update_program,
    update_registration_status,
)


async def make_profile(session, profile_id: str = "p-1") -> Profile:
    profile = Profile(id=profile_id, email=f"{profile_id}@club.test", first_name="Alex", last_name="Kim")
    session.add(profile)
    await session.flush()
    return profile


# ─────────────────────────── Participants ─────────────────────────────────────

class TestParticipants:

    async def test_account_holder_is_created_once(self, async_session) -> None:
        await make_profile(async_session)

        first = await ensure_account_holder(async_session, "p-1", "Alex", "Kim")
        second = await ensure_account_holder(async_session, "p-1", "Alexandra", "Kim")

        assert first.id == second.id
        assert second.first_name == "Alexandra"
        assert second.is_account_holder is True
        assert await count_participants_for(async_session, "p-1") == 1

    async def test_holder_listed_first(self, async_session) -> None:
        await make_profile(async_session)
        await add_participant(async_session, "p-1", "Aaron", "Kim", date(2014, 3, 1), "M")
        await ensure_account_holder(async_session, "p-1", "Zoe", "Kim")

        names = [p.first_name for p in await list_participants(async_session, "p-1")]

        assert names == ["Zoe", "Aaron"]

    async def test_counts_are_per_profile(self, async_session) -> None:
        await make_profile(async_session, "p-1")
        await make_profile(async_session, "p-2")
        await add_participant(async_session, "p-1", "Aaron", "Kim")

        assert await count_participants_for(async_session, "p-2") == 0
        assert await count_profiles(async_session) == 2


# ─────────────────────────── Programs ─────────────────────────────────────────

class TestPrograms:

    async def test_active_filter_and_toggle(self, async_session) -> None:
        summer = await create_program(async_session, "Summer Camp")
        await create_program(async_session, "Winter League", capacity=20)

        await set_program_active(async_session, summer.id, False)

        active = await list_programs(async_session, active_only=True)
        assert [p.name for p in active] == ["Winter League"]
        assert len(await list_programs(async_session)) == 2


# ─────────────────────────── Registrations ────────────────────────────────────

class TestRegistrations:

    async def test_register_creates_pending(self, async_session) -> None:
        await make_profile(async_session)
        kid = await add_participant(async_session, "p-1", "Aaron", "Kim")
        program = await create_program(async_session, "Summer Camp")

        reg, error = await register_for_program(async_session, program.id, kid.id, "p-1")

        assert error == ""
        assert reg.status == RegistrationStatus.PENDING
        loaded = await get_registration(async_session, reg.id)
        assert loaded.program.name == "Summer Camp"
        assert loaded.participant.profile.id == "p-1"

    async def test_duplicate_registration_rejected(self, async_session) -> None:
        await make_profile(async_session)
        kid = await add_participant(async_session, "p-1", "Aaron", "Kim")
        program = await create_program(async_session, "Summer Camp")
        await register_for_program(async_session, program.id, kid.id, "p-1")

        reg, error = await register_for_program(async_session, program.id, kid.id, "p-1")

        assert reg is None
        assert "already registered" in error

    async def test_foreign_participant_rejected(self, async_session) -> None:
        await make_profile(async_session, "p-1")
        await make_profile(async_session, "p-2")
        kid = await add_participant(async_session, "p-1", "Aaron", "Kim")
        program = await create_program(async_session, "Summer Camp")

        reg, error = await register_for_program(async_session, program.id, kid.id, "p-2")

        assert reg is None
        assert error == "Participant not found."

    async def test_inactive_and_missing_program(self, async_session) -> None:
        await make_profile(async_session)
        kid = await add_participant(async_session, "p-1", "Aaron", "Kim")
        program = await create_program(async_session, "Summer Camp")
        await set_program_active(async_session, program.id, False)

        _, closed = await register_for_program(async_session, program.id, kid.id, "p-1")
        _, missing = await register_for_program(async_session, 9999, kid.id, "p-1")

        assert "closed" in closed
        assert missing == "Program not found."

    async def test_capacity_ignores_cancelled(self, async_session) -> None:
        await make_profile(async_session)
        a = await add_participant(async_session, "p-1", "Aaron", "Kim")
        b = await add_participant(async_session, "p-1", "Bea", "Kim")
        program = await create_program(async_session, "Clinic", capacity=1)

        reg_a, _ = await register_for_program(async_session, program.id, a.id, "p-1")
        _, full = await register_for_program(async_session, program.id, b.id, "p-1")
        assert full == "This program is full."

        await update_registration_status(async_session, reg_a.id, RegistrationStatus.CANCELLED)
        assert await count_taken_seats(async_session, program.id) == 0
        reg_b, error = await register_for_program(async_session, program.id, b.id, "p-1")
        assert error == ""
        assert reg_b is not None

    async def test_reregistration_reuses_cancelled_row(self, async_session) -> None:
        await make_profile(async_session)
        kid = await add_participant(async_session, "p-1", "Aaron", "Kim")
        program = await create_program(async_session, "Summer Camp")
        first, _ = await register_for_program(async_session, program.id, kid.id, "p-1")
        first_id = first.id
        await update_registration_status(async_session, first_id, RegistrationStatus.CANCELLED)

        again, error = await register_for_program(async_session, program.id, kid.id, "p-1")

        assert error == ""
        assert again.id == first_id
        assert again.status == RegistrationStatus.PENDING

    async def test_listing_and_stats(self, async_session) -> None:
        await make_profile(async_session, "p-1")
        await make_profile(async_session, "p-2")
        kid = await add_participant(async_session, "p-1", "Aaron", "Kim")
        other = await add_participant(async_session, "p-2", "Cy", "Diaz")
        camp = await create_program(async_session, "Summer Camp")
        league = await create_program(async_session, "League")
        r1, _ = await register_for_program(async_session, camp.id, kid.id, "p-1")
        await register_for_program(async_session, league.id, kid.id, "p-1")
        await register_for_program(async_session, camp.id, other.id, "p-2")
        await update_registration_status(async_session, r1.id, RegistrationStatus.CONFIRMED)

        mine = await list_registrations_for_profile(async_session, "p-1")
        camp_regs = await list_registrations(async_session, program_id=camp.id)
        pending = await list_registrations(async_session, status=RegistrationStatus.PENDING)
        stats = await registration_stats(async_session)

        assert len(mine) == 2
        assert len(camp_regs) == 2
        assert len(pending) == 2
        assert stats == {
            RegistrationStatus.PENDING:   2,
            RegistrationStatus.CONFIRMED: 1,
            RegistrationStatus.CANCELLED: 0,
        }

    async def test_stats_on_empty_database(self, async_session) -> None:
        stats = await registration_stats(async_session)
        assert set(stats.values()) == {0}


# ─────────────────────────── Program details ──────────────────────────────────

class TestProgramDetails:

    async def test_create_with_details_and_update(self, async_session) -> None:
        program = await create_program(
            async_session,
            "Summer Camp",
            start_date=date(2026, 7, 6),
            end_date=date(2026, 7, 10),
            registration_deadline=date(2026, 6, 30),
            location="Main Arena",
            price=Decimal("150.00"),
        )
        assert program.price_label == "$150.00"

        updated = await update_program(async_session, program.id, location="Rink B", price=Decimal("0"))

        assert updated.location == "Rink B"
        assert updated.price_label == "Free"
        assert updated.start_date == date(2026, 7, 6)

    async def test_update_missing_program(self, async_session) -> None:
        assert await update_program(async_session, 9999, location="Rink B") is None

    async def test_unknown_field_rejected(self, async_session) -> None:
        with pytest.raises(ValueError):
            await create_program(async_session, "Summer Camp", colour="red")

    async def test_deadline_closes_registration(self, async_session) -> None:
        await make_profile(async_session)
        kid = await add_participant(async_session, "p-1", "Aaron", "Kim")
        program = await create_program(async_session, "Summer Camp", registration_deadline=date(2026, 6, 30))

        on_time = await check_eligibility(async_session, program.id, kid.id, "p-1", today=date(2026, 6, 30))
        reg, late = await register_for_program(
            async_session, program.id, kid.id, "p-1", today=date(2026, 7, 1)
        )

        assert on_time == ""
        assert reg is None
        assert "deadline" in late
        assert program.registration_open(date(2026, 6, 30)) is True
        assert program.registration_open(date(2026, 7, 1)) is False


# ─────────────────────────── Questions and waiver ─────────────────────────────

class TestQuestionsAndWaiver:

    async def _setup(self, session, **program_fields):
        await make_profile(session)
        kid = await add_participant(session, "p-1", "Aaron", "Kim")
        program = await create_program(session, "Summer Camp", **program_fields)
        return kid, program

    async def test_questions_keep_their_order(self, async_session) -> None:
        _, program = await self._setup(async_session)
        first = await add_program_question(async_session, program.id, "Jersey size", QuestionKind.SELECT,
                                           True, ["S", "M", "L"])
        second = await add_program_question(async_session, program.id, "Allergies")

        questions = await list_program_questions(async_session, program.id)

        assert [q.id for q in questions] == [first.id, second.id]
        assert [q.position for q in questions] == [0, 1]
        assert second.options is None

    async def test_delete_question(self, async_session) -> None:
        _, program = await self._setup(async_session)
        question = await add_program_question(async_session, program.id, "Allergies")

        assert await delete_program_question(async_session, question.id) is True
        assert await delete_program_question(async_session, question.id) is False
        assert await list_program_questions(async_session, program.id) == []

    async def test_required_answer_missing(self, async_session) -> None:
        kid, program = await self._setup(async_session)
        await add_program_question(async_session, program.id, "Emergency contact", required=True)

        reg, error = await register_for_program(async_session, program.id, kid.id, "p-1", answers={})

        assert reg is None
        assert error == "Please answer: Emergency contact"

    async def test_select_answer_must_be_an_option(self, async_session) -> None:
        kid, program = await self._setup(async_session)
        size = await add_program_question(async_session, program.id, "Jersey size", QuestionKind.SELECT,
                                          True, ["S", "M", "L"])

        _, error = await register_for_program(
            async_session, program.id, kid.id, "p-1", answers={str(size.id): "XXL"}
        )

        assert "Jersey size" in error

    async def test_required_checkbox_must_be_ticked(self, async_session) -> None:
        kid, program = await self._setup(async_session)
        photo = await add_program_question(async_session, program.id, "Photo consent", QuestionKind.CHECKBOX, True)

        _, unticked = await register_for_program(
            async_session, program.id, kid.id, "p-1", answers={str(photo.id): "no"}
        )
        reg, ticked = await register_for_program(
            async_session, program.id, kid.id, "p-1", answers={str(photo.id): "yes"}
        )

        assert unticked == "Please answer: Photo consent"
        assert ticked == ""
        assert reg.answers == {str(photo.id): "yes"}

    async def test_answers_and_waiver_are_stored(self, async_session) -> None:
        kid, program = await self._setup(async_session, waiver_text="I accept the risks of playing hockey.")
        size = await add_program_question(async_session, program.id, "Jersey size", QuestionKind.SELECT,
                                          True, ["S", "M", "L"])
        answers = {str(size.id): "M"}

        _, no_waiver = await register_for_program(async_session, program.id, kid.id, "p-1", answers=answers)
        reg, error = await register_for_program(
            async_session, program.id, kid.id, "p-1", answers=answers, waiver_accepted=True
        )

        assert no_waiver == "Please accept the waiver agreement."
        assert error == ""
        loaded = await get_registration(async_session, reg.id)
        assert loaded.answers == {str(size.id): "M"}
        assert loaded.waiver_accepted_at is not None

    async def test_no_waiver_needed_without_text(self, async_session) -> None:
        kid, program = await self._setup(async_session)

        reg, error = await register_for_program(async_session, program.id, kid.id, "p-1")

        assert error == ""
        assert reg.waiver_accepted_at is None
        assert reg.answers is None

    def test_optional_questions_may_be_blank(self) -> None:
        question = ProgramQuestion(id=3, label="Allergies", kind=QuestionKind.TEXT, required=False)
        assert check_answers([question], {}) == ""
        assert check_answers([question], {"3": "peanuts"}) == ""
