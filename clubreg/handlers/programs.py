"""
Public program catalogue and program registration.

Flow:
  /programs → program card → Register → /programs/{id}/register
            → pick participant → custom questions (if any, one at a time)
            → waiver (if the program has one) → registration saved (pending) ✅
"""
import logging
from typing import Optional

from aiogram import F, Router, html
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message

from clubreg.keyboards import (
    AnswerCb,
    FormCb,
    ParticipantCb,
    ProgramCb,
    back_kb,
    participant_pick_kb,
    program_detail_kb,
    program_list_kb,
    question_answer_kb,
    waiver_kb,
)
from clubreg.middlewares import CanOpen
from clubreg.models.models import Program, QuestionKind
from clubreg.navigation import RETURN_TO_KEY, NavContext, navigator
from clubreg.services import (
    check_eligibility,
    count_taken_seats,
    get_program,
    list_participants,
    list_program_questions,
    list_programs,
    register_for_program,
)
from clubreg.session.machine import SessionStateMachine
from clubreg.states import ProgramRegistrationStates
from clubreg.validators import clean_answer

logger = logging.getLogger(__name__)
router = Router(name="programs")

# FSM data keys of an in-progress registration
_REG_KEYS = ("reg_program", "reg_participant", "reg_questions", "reg_index", "reg_answers")


def _fmt_date(d) -> str:
    return d.strftime("%b %d, %Y") if d else "—"


async def program_card(ctx: NavContext, program: Program) -> str:
    taken = await count_taken_seats(ctx.session, program.id)
    if program.capacity is None:
        seats = f"👥 Registered: {taken}"
    else:
        seats = f"👥 Seats: {taken}/{program.capacity}"
    desc = f"\n📝 <i>{html.quote(program.description)}</i>\n" if program.description else ""

    details = []
    if program.start_date or program.end_date:
        details.append(f"📅 {_fmt_date(program.start_date)} – {_fmt_date(program.end_date)}")
    if program.location:
        details.append(f"📍 {html.quote(program.location)}")
    details.append(f"💵 {program.price_label}")
    if program.registration_deadline:
        details.append(f"⏰ Register by {_fmt_date(program.registration_deadline)}")

    if not program.is_active:
        state = "⏸ Registration closed"
    elif program.deadline_passed():
        state = "⏸ Registration deadline has passed"
    else:
        state = "🟢 Registration open"
    return f"🏅 <b>{html.quote(program.name)}</b>\n{desc}\n" + "\n".join(details) + f"\n{seats}\n{state}"


# ── Catalogue ─────────────────────────────────────────────────────────────────

@navigator.screen("/programs")
async def screen_programs(ctx: NavContext) -> None:
    programs = await list_programs(ctx.session, active_only=True)
    back = "/dashboard" if ctx.machine.snapshot.is_authenticated else "/"
    if not programs:
        await ctx.show("🏅 <b>Programs</b>\n\n<i>No programs are open right now.</i>", reply_markup=back_kb(back))
        return
    await ctx.show("🏅 <b>Programs open for registration:</b>", reply_markup=program_list_kb(programs, back))


@router.callback_query(ProgramCb.filter(F.action == "view"))
async def cq_program_view(callback: CallbackQuery, callback_data: ProgramCb, nav: NavContext) -> None:
    program = await get_program(nav.session, callback_data.pid)
    if program is None:
        await callback.answer("Program not found.", show_alert=True)
        return
    await callback.answer()
    await nav.show(
        await program_card(nav, program),
        reply_markup=program_detail_kb(program, can_register=program.registration_open()),
    )


# ── Registration ──────────────────────────────────────────────────────────────

@navigator.screen("/programs/{program_id}/register")
async def screen_program_register(ctx: NavContext, program_id: str) -> None:
    program = await get_program(ctx.session, int(program_id)) if program_id.isdigit() else None
    if program is None:
        await navigator.not_found(ctx, f"/programs/{program_id}/register")
        return
    if not program.registration_open():
        await ctx.show(
            f"⏸ Registration for <b>{html.quote(program.name)}</b> is closed.",
            reply_markup=back_kb("/programs"),
        )
        return

    profile = ctx.machine.snapshot.profile
    participants = await list_participants(ctx.session, profile.id)
    # Adding a participant from here comes back to this screen
    await ctx.state.update_data(**{RETURN_TO_KEY: f"/programs/{program.id}/register"})

    card = await program_card(ctx, program)
    if not participants:
        prompt = "\n\nYou have no participants yet. Add one to register:"
    else:
        prompt = "\n\nWho are you registering?"
    await ctx.show(card + prompt, reply_markup=participant_pick_kb(participants, program.id))


@router.callback_query(ParticipantCb.filter(F.action == "pick"), CanOpen("/registrations"))
async def cq_pick_participant(
    callback: CallbackQuery,
    callback_data: ParticipantCb,
    machine: SessionStateMachine,
    nav: NavContext,
) -> None:
    profile = machine.snapshot.profile
    error = await check_eligibility(nav.session, callback_data.prg, callback_data.pid, profile.id)
    if error:
        await callback.answer(error, show_alert=True)
        return

    questions = await list_program_questions(nav.session, callback_data.prg)
    await nav.state.update_data(
        reg_program=callback_data.prg,
        reg_participant=callback_data.pid,
        reg_questions=[
            {
                "id":       q.id,
                "label":    q.label,
                "kind":     q.kind,
                "required": q.required,
                "options":  q.options,
            }
            for q in questions
        ],
        reg_index=0,
        reg_answers={},
    )
    await callback.answer()
    await _next_step(nav, machine)


async def _next_step(nav: NavContext, machine: SessionStateMachine) -> None:
    """Ask the next unanswered question, then the waiver, then save."""
    data = await nav.state.get_data()
    questions = data["reg_questions"]
    index = data["reg_index"]
    if index < len(questions):
        await nav.state.set_state(ProgramRegistrationStates.answer_question)
        await nav.show(_question_text(questions[index], index, len(questions)),
                       reply_markup=question_answer_kb(questions[index]))
        return

    program = await get_program(nav.session, data["reg_program"])
    if program is not None and program.waiver_text:
        await nav.state.set_state(ProgramRegistrationStates.accept_waiver)
        await nav.show(
            f"📜 <b>Waiver — {html.quote(program.name)}</b>\n\n"
            f"{html.quote(program.waiver_text)}\n\n"
            f"<i>Tap “I accept” to agree on behalf of the participant.</i>",
            reply_markup=waiver_kb(),
        )
        return
    await _save_registration(nav, machine, waiver_accepted=False)


def _question_text(question: dict, index: int, total: int) -> str:
    marker = " <b>*</b>" if question["required"] else ""
    text = f"❓ <b>Question {index + 1}/{total}</b>\n\n{html.quote(question['label'])}{marker}"
    if question["kind"] == QuestionKind.TEXT:
        text += "\n\n<i>Type your answer:</i>"
    return text


async def _record_answer(nav: NavContext, machine: SessionStateMachine, value: Optional[str]) -> None:
    data = await nav.state.get_data()
    question = data["reg_questions"][data["reg_index"]]
    answers = dict(data["reg_answers"])
    if value is not None:
        answers[str(question["id"])] = value
    await nav.state.update_data(reg_answers=answers, reg_index=data["reg_index"] + 1)
    await _next_step(nav, machine)


async def _current_question(state: FSMContext) -> Optional[dict]:
    data = await state.get_data()
    questions = data.get("reg_questions") or []
    index = data.get("reg_index", 0)
    return questions[index] if index < len(questions) else None


@router.message(ProgramRegistrationStates.answer_question, CanOpen("/registrations"))
async def msg_answer(message: Message, nav: NavContext, machine: SessionStateMachine) -> None:
    question = await _current_question(nav.state)
    if question is None:
        await nav.state.set_state(None)
        return
    if question["kind"] != QuestionKind.TEXT:
        await message.answer("👆 Please pick an answer with the buttons above.")
        return
    try:
        value = clean_answer(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=question_answer_kb(question))
        return
    await _record_answer(nav, machine, value)


@router.callback_query(AnswerCb.filter(), ProgramRegistrationStates.answer_question, CanOpen("/registrations"))
async def cq_answer(
    callback: CallbackQuery,
    callback_data: AnswerCb,
    nav: NavContext,
    machine: SessionStateMachine,
) -> None:
    question = await _current_question(nav.state)
    if question is None:
        await callback.answer()
        return
    if question["kind"] == QuestionKind.SELECT:
        options = question["options"] or []
        index = int(callback_data.value) if callback_data.value.isdigit() else -1
        if not 0 <= index < len(options):
            await callback.answer("Unknown option.", show_alert=True)
            return
        value = options[index]
    elif callback_data.value in ("yes", "no"):
        value = callback_data.value
    else:
        await callback.answer()
        return
    await callback.answer()
    await _record_answer(nav, machine, value)


@router.callback_query(FormCb.filter(F.action == "skip"), ProgramRegistrationStates.answer_question)
async def cq_skip_answer(callback: CallbackQuery, nav: NavContext, machine: SessionStateMachine) -> None:
    question = await _current_question(nav.state)
    if question is not None and question["required"]:
        await callback.answer("This question is required.", show_alert=True)
        return
    await callback.answer()
    await _record_answer(nav, machine, None)


@router.callback_query(
    FormCb.filter(F.action == "confirm"),
    ProgramRegistrationStates.accept_waiver,
    CanOpen("/registrations"),
)
async def cq_accept_waiver(callback: CallbackQuery, nav: NavContext, machine: SessionStateMachine) -> None:
    await callback.answer()
    await _save_registration(nav, machine, waiver_accepted=True)


async def _save_registration(nav: NavContext, machine: SessionStateMachine, waiver_accepted: bool) -> None:
    data = await nav.state.get_data()
    profile = machine.snapshot.profile
    program_id = data["reg_program"]
    registration, error = await register_for_program(
        nav.session,
        program_id=program_id,
        participant_id=data["reg_participant"],
        profile_id=profile.id,
        answers=data.get("reg_answers") or {},
        waiver_accepted=waiver_accepted,
    )
    await nav.state.set_state(None)
    await nav.state.update_data(**{key: None for key in _REG_KEYS})
    if error:
        await nav.show(f"⚠️ {html.quote(error)}", reply_markup=back_kb(f"/programs/{program_id}/register"))
        return

    await nav.state.update_data(**{RETURN_TO_KEY: None})
    program = await get_program(nav.session, program_id)
    logger.info(
        "Participant %s registered for program %s (registration %s)",
        data["reg_participant"], program_id, registration.id,
    )
    await nav.show(
        f"🎉 <b>Registration received!</b>\n\n"
        f"🏅 {html.quote(program.name)}\n"
        f"💵 {program.price_label}\n"
        f"📌 Status: ⚪️ Pending confirmation\n\n"
        f"The club will confirm your spot shortly.",
        reply_markup=back_kb("/registrations", "📋 My registrations"),
    )
