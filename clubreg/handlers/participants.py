"""
Participants (the account holder and dependants) and the member's
registrations.

Flow:
  /participants/new → first name → last name → date of birth → gender → saved ✅
"""
import logging

from aiogram import F, Router, html
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from pydantic import ValidationError

from clubreg.keyboards import (
    GenderCb, ParticipantCb, RegistrationCb,
    back_kb, cancel_kb, gender_kb, my_registrations_kb, participants_kb,
)
from clubreg.middlewares import CanOpen
from clubreg.models.models import Gender, RegistrationStatus
from clubreg.navigation import RETURN_TO_KEY, NavContext, navigator
from clubreg.services import (
    add_participant, get_participant, get_registration,
    list_participants, list_registrations_for_profile, update_registration_status,
)
from clubreg.session.machine import SessionStateMachine
from clubreg.states import ParticipantStates
from clubreg.validators import ParticipantData, clean_name, first_error, parse_birth_date

logger = logging.getLogger(__name__)
router = Router(name="participants")


# ── List / detail ─────────────────────────────────────────────────────────────

@navigator.screen("/participants")
async def screen_participants(ctx: NavContext) -> None:
    await ctx.state.update_data(**{RETURN_TO_KEY: None})
    profile = ctx.machine.snapshot.profile
    participants = await list_participants(ctx.session, profile.id)
    if not participants:
        text = "👨‍👩‍👧 <b>Participants</b>\n\n<i>Nobody added yet.</i>"
    else:
        text = "👨‍👩‍👧 <b>Participants</b>\n\n⭐️ = you, the account holder"
    await ctx.show(text, reply_markup=participants_kb(participants))


@router.callback_query(ParticipantCb.filter(F.action == "view"), CanOpen("/participants"))
async def cq_participant_view(
    callback: CallbackQuery,
    callback_data: ParticipantCb,
    machine: SessionStateMachine,
    nav: NavContext,
) -> None:
    participant = await get_participant(nav.session, callback_data.pid)
    if participant is None or participant.profile_id != machine.snapshot.profile.id:
        await callback.answer("Participant not found.", show_alert=True)
        return

    born = participant.date_of_birth.isoformat() if participant.date_of_birth else "—"
    gender = Gender.LABELS.get(participant.gender, "—")
    lines = [
        f"{r.status_emoji} {html.quote(r.program.name)}"
        for r in participant.registrations
    ] or ["<i>No registrations yet.</i>"]
    await callback.answer()
    await nav.show(
        f"👤 <b>{html.quote(participant.full_name)}</b>\n"
        f"🎂 {born}\n"
        f"🚻 {gender}\n\n"
        f"<b>Programs:</b>\n" + "\n".join(lines),
        reply_markup=back_kb("/participants"),
    )


# ── New participant ───────────────────────────────────────────────────────────

@navigator.screen("/participants/new")
async def screen_participant_new(ctx: NavContext) -> None:
    await ctx.state.set_state(ParticipantStates.enter_first_name)
    await ctx.show(
        "➕ <b>New participant</b>\n\nEnter the participant's <b>first name</b>:",
        reply_markup=cancel_kb(),
    )


@router.message(ParticipantStates.enter_first_name)
async def msg_participant_first_name(message: Message, state: FSMContext) -> None:
    try:
        first_name = clean_name(message.text or "", "First name")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await state.update_data(p_first_name=first_name)
    await state.set_state(ParticipantStates.enter_last_name)
    await message.answer("Enter the <b>last name</b>:", reply_markup=cancel_kb())


@router.message(ParticipantStates.enter_last_name)
async def msg_participant_last_name(message: Message, state: FSMContext) -> None:
    try:
        last_name = clean_name(message.text or "", "Last name")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await state.update_data(p_last_name=last_name)
    await state.set_state(ParticipantStates.enter_date_of_birth)
    await message.answer(
        "🎂 Enter the <b>date of birth</b> (YYYY-MM-DD, e.g. <code>2012-05-31</code>):",
        reply_markup=cancel_kb(),
    )


@router.message(ParticipantStates.enter_date_of_birth)
async def msg_participant_dob(message: Message, state: FSMContext) -> None:
    try:
        born = parse_birth_date(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return

    await state.update_data(p_date_of_birth=born.isoformat())
    await state.set_state(ParticipantStates.choose_gender)
    await message.answer("🚻 Choose the <b>gender</b>:", reply_markup=gender_kb())


@router.message(ParticipantStates.choose_gender)
async def msg_participant_gender_hint(message: Message) -> None:
    """Catch accidental text input during the gender selection step."""
    await message.answer("👆 Please choose using the buttons:", reply_markup=gender_kb())


@router.callback_query(GenderCb.filter(), ParticipantStates.choose_gender, CanOpen("/participants/new"))
async def cq_participant_gender(
    callback: CallbackQuery,
    callback_data: GenderCb,
    state: FSMContext,
    machine: SessionStateMachine,
    nav: NavContext,
) -> None:
    data = await state.get_data()
    try:
        form = ParticipantData(
            first_name=data["p_first_name"],
            last_name=data["p_last_name"],
            date_of_birth=data["p_date_of_birth"],
            gender=callback_data.gender,
        )
    except ValidationError as exc:
        await callback.answer(first_error(exc), show_alert=True)
        return

    participant = await add_participant(
        nav.session,
        profile_id=machine.snapshot.profile.id,
        first_name=form.first_name,
        last_name=form.last_name,
        date_of_birth=form.date_of_birth,
        gender=form.gender,
    )
    logger.info("Participant %s added to profile %s", participant.id, participant.profile_id)

    await state.set_state(None)
    await state.update_data(p_first_name=None, p_last_name=None, p_date_of_birth=None)
    await callback.answer(f"✅ {form.first_name} added!")
    await navigator.navigate(nav, data.get(RETURN_TO_KEY) or "/participants")


# ── My registrations ──────────────────────────────────────────────────────────

@navigator.screen("/registrations")
async def screen_registrations(ctx: NavContext) -> None:
    profile = ctx.machine.snapshot.profile
    registrations = await list_registrations_for_profile(ctx.session, profile.id)
    if not registrations:
        text = "📋 <b>My registrations</b>\n\n<i>No registrations yet.</i>"
    else:
        lines = [
            f"{r.status_emoji} {html.quote(r.participant.full_name)} · {html.quote(r.program.name)}"
            for r in registrations
        ]
        text = "📋 <b>My registrations</b>\n\n" + "\n".join(lines)
    await ctx.show(text, reply_markup=my_registrations_kb(registrations))


@router.callback_query(RegistrationCb.filter(F.action == "withdraw"), CanOpen("/registrations"))
async def cq_withdraw(
    callback: CallbackQuery,
    callback_data: RegistrationCb,
    machine: SessionStateMachine,
    nav: NavContext,
) -> None:
    registration = await get_registration(nav.session, callback_data.rid)
    if registration is None or registration.participant.profile_id != machine.snapshot.profile.id:
        await callback.answer("Registration not found.", show_alert=True)
        return

    await update_registration_status(nav.session, registration.id, RegistrationStatus.CANCELLED)
    logger.info("Registration %s withdrawn by profile %s", registration.id, machine.snapshot.profile.id)
    await callback.answer("Withdrawn")
    await navigator.navigate(nav, "/registrations")
