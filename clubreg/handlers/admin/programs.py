"""
Program management: list with open/close toggle, the creation wizard, the
edit screen and the custom registration questions.

Flow:
  /admin/programs/new → name → description → start → end → deadline
                      → location → price → capacity → waiver
                      → confirm → saved ✅          (every step but the name can be skipped)
  /admin/programs/{id}/edit      → pick a field → new value (or clear) → saved ✅
  /admin/programs/{id}/questions → ➕ label → kind → options (dropdown) → required → saved ✅
"""
import logging
from typing import Any, Callable, Dict, Optional

from aiogram import F, Router, html
from aiogram.fsm.context import FSMContext
from aiogram.types import CallbackQuery, Message
from pydantic import ValidationError

from clubreg.keyboards import (
    EDITABLE_FIELDS,
    FormCb,
    ProgramCb,
    ProgramEditCb,
    QuestionCb,
    admin_programs_kb,
    cancel_kb,
    confirm_kb,
    program_edit_kb,
    question_kind_kb,
    question_required_kb,
    questions_kb,
    skip_kb,
)
from clubreg.middlewares import IsAdmin
from clubreg.models.models import Program, QuestionKind
from clubreg.navigation import NavContext, navigator
from clubreg.services import (
    PROGRAM_FIELDS,
    add_program_question,
    create_program,
    delete_program_question,
    get_program,
    list_program_questions,
    list_programs,
    set_program_active,
    update_program,
)
from clubreg.states import AdminProgramEditStates, AdminProgramStates, AdminQuestionStates
from clubreg.validators import (
    ProgramData,
    QuestionData,
    clean_description,
    clean_location,
    clean_program_name,
    clean_question_label,
    clean_waiver,
    first_error,
    parse_capacity,
    parse_date,
    parse_options,
    parse_price,
)

logger = logging.getLogger(__name__)
router = Router(name="admin_programs")
router.callback_query.filter(IsAdmin())
router.message.filter(IsAdmin())

# One answer → a value ProgramData accepts (dates and prices as text)
FIELD_PARSERS: Dict[str, Callable[[str], Any]] = {
    "name":                  clean_program_name,
    "description":           clean_description,
    "start_date":            lambda v: parse_date(v, "Start date").isoformat(),
    "end_date":              lambda v: parse_date(v, "End date").isoformat(),
    "registration_deadline": lambda v: parse_date(v, "Deadline").isoformat(),
    "location":              clean_location,
    "price":                 lambda v: str(parse_price(v)),
    "capacity":              parse_capacity,
    "waiver_text":           clean_waiver,
}

FIELD_PROMPTS = {
    "name":                  "Enter the program <b>name</b>:",
    "description":           "📝 Enter a short <b>description</b>:",
    "start_date":            "📅 Enter the <b>start date</b> (YYYY-MM-DD):",
    "end_date":              "🏁 Enter the <b>end date</b> (YYYY-MM-DD):",
    "registration_deadline": "⏰ Enter the <b>registration deadline</b> (YYYY-MM-DD), on or before the start:",
    "location":              "📍 Enter the <b>location</b>:",
    "price":                 "💵 Enter the <b>price</b> per participant (0 = free):",
    "capacity":              "👥 Enter the <b>capacity</b> (number of seats), 0 = unlimited:",
    "waiver_text":           "📜 Enter the <b>waiver</b> participants must accept:",
}


def _program_values(program: Program) -> Dict[str, Any]:
    return {field: getattr(program, field) for field in PROGRAM_FIELDS}


def _field_value(field: str, value: Any) -> str:
    if value is None or value == "":
        return "—"
    if field == "price":
        return "Free" if not float(value) else f"${float(value):,.2f}"
    if field == "waiver_text":
        text = str(value)
        return html.quote(text if len(text) <= 80 else text[:80] + "…")
    return html.quote(str(value))


def _summary(values: Dict[str, Any]) -> str:
    return "\n".join(f"{label}: {_field_value(field, values.get(field))}" for field, label in EDITABLE_FIELDS)


# ── List / toggle ─────────────────────────────────────────────────────────────

@navigator.screen("/admin/programs")
async def screen_admin_programs(ctx: NavContext) -> None:
    programs = await list_programs(ctx.session)
    text = (
        "🏅 <b>Programs</b>\n\n"
        "Tap a program to open or close registration, ✏️ to edit it, 📋 to see who signed up."
    )
    if not programs:
        text = "🏅 <b>Programs</b>\n\n<i>No programs yet.</i>"
    await ctx.show(text, reply_markup=admin_programs_kb(programs))


@router.callback_query(ProgramCb.filter(F.action == "toggle"))
async def cq_program_toggle(callback: CallbackQuery, callback_data: ProgramCb, nav: NavContext) -> None:
    program = await get_program(nav.session, callback_data.pid)
    if program is None:
        await callback.answer("Program not found.", show_alert=True)
        return

    was_active = program.is_active
    await set_program_active(nav.session, program.id, not was_active)
    logger.info("Program %s %s", program.id, "closed" if was_active else "opened")
    await callback.answer("Updated")
    await navigator.navigate(nav, "/admin/programs")


# ── Creation wizard ───────────────────────────────────────────────────────────

@navigator.screen("/admin/programs/new")
async def screen_program_new(ctx: NavContext) -> None:
    await ctx.state.set_state(AdminProgramStates.enter_field)
    await ctx.state.update_data(program_draft={}, program_field=PROGRAM_FIELDS[0])
    await ctx.show(f"➕ <b>New program</b>\n\n{FIELD_PROMPTS[PROGRAM_FIELDS[0]]}", reply_markup=cancel_kb())


async def _wizard_next(target: Message, state: FSMContext, value: Any, edit: bool = False) -> None:
    """Store the current field's value and ask the next one (or show the summary)."""
    data = await state.get_data()
    field = data["program_field"]
    draft = dict(data["program_draft"])
    draft[field] = value

    position = PROGRAM_FIELDS.index(field) + 1
    if position < len(PROGRAM_FIELDS):
        next_field = PROGRAM_FIELDS[position]
        await state.update_data(program_draft=draft, program_field=next_field)
        text, markup = FIELD_PROMPTS[next_field] + "\n\n<i>Or skip.</i>", skip_kb()
    else:
        await state.update_data(program_draft=draft, program_field=None)
        await state.set_state(AdminProgramStates.confirm)
        text, markup = f"📝 <b>Check the program:</b>\n\n{_summary(draft)}", confirm_kb()

    if edit:
        await target.edit_text(text, reply_markup=markup)
    else:
        await target.answer(text, reply_markup=markup)


@router.message(AdminProgramStates.enter_field)
async def msg_program_field(message: Message, state: FSMContext) -> None:
    field = (await state.get_data()).get("program_field")
    if field is None:
        return
    try:
        value = FIELD_PARSERS[field](message.text or "")
    except ValueError as exc:
        markup = cancel_kb() if field == "name" else skip_kb()
        await message.answer(f"⚠️ {exc}:", reply_markup=markup)
        return
    await _wizard_next(message, state, value)


@router.callback_query(FormCb.filter(F.action == "skip"), AdminProgramStates.enter_field)
async def cq_skip_program_field(callback: CallbackQuery, state: FSMContext) -> None:
    field = (await state.get_data()).get("program_field")
    if field is None or field == "name":
        await callback.answer("The name is required.", show_alert=True)
        return
    await _wizard_next(callback.message, state, None, edit=True)
    await callback.answer()


@router.callback_query(FormCb.filter(F.action == "edit"), AdminProgramStates.confirm)
async def cq_program_edit(callback: CallbackQuery, nav: NavContext) -> None:
    await callback.answer()
    await screen_program_new(nav)


@router.callback_query(FormCb.filter(F.action == "confirm"), AdminProgramStates.confirm)
async def cq_program_save(callback: CallbackQuery, state: FSMContext, nav: NavContext) -> None:
    data = await state.get_data()
    try:
        form = ProgramData(**data["program_draft"])
    except ValidationError as exc:
        await callback.answer(first_error(exc), show_alert=True)
        return

    program = await create_program(nav.session, **form.model_dump())
    logger.info("Program %s created: %s", program.id, program.name)
    await state.set_state(None)
    await state.update_data(program_draft=None, program_field=None)
    await callback.answer("✅ Program created!")
    await navigator.navigate(nav, "/admin/programs")


# ── Edit ──────────────────────────────────────────────────────────────────────

async def _load_program(ctx: NavContext, program_id: str, path: str) -> Optional[Program]:
    program = await get_program(ctx.session, int(program_id)) if program_id.isdigit() else None
    if program is None:
        await navigator.not_found(ctx, path)
    return program


@navigator.screen("/admin/programs/{program_id}/edit")
async def screen_program_edit(ctx: NavContext, program_id: str) -> None:
    program = await _load_program(ctx, program_id, f"/admin/programs/{program_id}/edit")
    if program is None:
        return
    await ctx.show(
        f"✏️ <b>Edit program</b> {program.status_emoji}\n\n{_summary(_program_values(program))}\n\n"
        f"Tap a field to change it.",
        reply_markup=program_edit_kb(program),
    )


@router.callback_query(ProgramEditCb.filter())
async def cq_edit_field(callback: CallbackQuery, callback_data: ProgramEditCb, nav: NavContext) -> None:
    if callback_data.field not in FIELD_PARSERS:
        await callback.answer()
        return
    await nav.state.set_state(AdminProgramEditStates.enter_value)
    await nav.state.update_data(edit_pid=callback_data.pid, edit_field=callback_data.field)
    await callback.answer()
    markup = cancel_kb() if callback_data.field == "name" else skip_kb("🧹 Clear")
    await nav.show(f"✏️ {FIELD_PROMPTS[callback_data.field]}", reply_markup=markup)


async def _apply_edit(nav: NavContext, value: Any) -> str:
    """Validate the new value together with the other fields and save it."""
    data = await nav.state.get_data()
    field = data.get("edit_field")
    program = await get_program(nav.session, data.get("edit_pid") or 0)
    if program is None or field is None:
        return "Program not found."

    values = _program_values(program)
    values[field] = value
    try:
        form = ProgramData(**values)
    except ValidationError as exc:
        return first_error(exc)

    await update_program(nav.session, program.id, **{field: getattr(form, field)})
    logger.info("Program %s: %s updated", program.id, field)
    await nav.state.set_state(None)
    await nav.state.update_data(edit_pid=None, edit_field=None)
    await navigator.navigate(nav, f"/admin/programs/{program.id}/edit")
    return ""


@router.message(AdminProgramEditStates.enter_value)
async def msg_edit_value(message: Message, nav: NavContext) -> None:
    field = (await nav.state.get_data()).get("edit_field")
    if field is None:
        return
    markup = cancel_kb() if field == "name" else skip_kb("🧹 Clear")
    try:
        value = FIELD_PARSERS[field](message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=markup)
        return
    error = await _apply_edit(nav, value)
    if error:
        await message.answer(f"⚠️ {error}:", reply_markup=markup)


@router.callback_query(FormCb.filter(F.action == "skip"), AdminProgramEditStates.enter_value)
async def cq_clear_value(callback: CallbackQuery, nav: NavContext) -> None:
    field = (await nav.state.get_data()).get("edit_field")
    if field == "name":
        await callback.answer("The name is required.", show_alert=True)
        return
    error = await _apply_edit(nav, None)
    await callback.answer(error or "Cleared", show_alert=bool(error))


# ── Registration questions ────────────────────────────────────────────────────

@navigator.screen("/admin/programs/{program_id}/questions")
async def screen_program_questions(ctx: NavContext, program_id: str) -> None:
    program = await _load_program(ctx, program_id, f"/admin/programs/{program_id}/questions")
    if program is None:
        return
    questions = await list_program_questions(ctx.session, program.id)
    lines = [f"❓ <b>Registration questions — {html.quote(program.name)}</b>\n"]
    if not questions:
        lines.append("<i>No custom questions yet.</i>")
    for i, q in enumerate(questions, 1):
        required = " <b>*</b>" if q.required else ""
        options = f" ({html.quote(', '.join(q.options))})" if q.options else ""
        lines.append(f"{i}. {html.quote(q.label)}{required} · {q.kind_label}{options}")
    if questions:
        lines.append("\nTap 🗑 to remove a question.")
    await ctx.show("\n".join(lines), reply_markup=questions_kb(program.id, questions))


@router.callback_query(QuestionCb.filter(F.action == "add"))
async def cq_question_add(callback: CallbackQuery, callback_data: QuestionCb, nav: NavContext) -> None:
    await nav.state.set_state(AdminQuestionStates.enter_label)
    await nav.state.update_data(q_pid=callback_data.pid, q_label=None, q_kind=None, q_options=None)
    await callback.answer()
    await nav.show("❓ Enter the <b>question</b> as participants will see it:", reply_markup=cancel_kb())


@router.message(AdminQuestionStates.enter_label)
async def msg_question_label(message: Message, state: FSMContext) -> None:
    try:
        label = clean_question_label(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return
    await state.update_data(q_label=label)
    await state.set_state(AdminQuestionStates.choose_kind)
    await message.answer("How is it answered?", reply_markup=question_kind_kb())


@router.callback_query(QuestionCb.filter(F.action == "kind"), AdminQuestionStates.choose_kind)
async def cq_question_kind(callback: CallbackQuery, callback_data: QuestionCb, state: FSMContext) -> None:
    if callback_data.value not in QuestionKind.ALL:
        await callback.answer()
        return
    await state.update_data(q_kind=callback_data.value)
    await callback.answer()
    if callback_data.value == QuestionKind.SELECT:
        await state.set_state(AdminQuestionStates.enter_options)
        await callback.message.edit_text(
            "📋 Enter the dropdown <b>options</b>, separated by commas:", reply_markup=cancel_kb()
        )
        return
    await state.set_state(AdminQuestionStates.choose_required)
    await callback.message.edit_text("Is an answer required?", reply_markup=question_required_kb())


@router.message(AdminQuestionStates.enter_options)
async def msg_question_options(message: Message, state: FSMContext) -> None:
    try:
        options = parse_options(message.text or "")
    except ValueError as exc:
        await message.answer(f"⚠️ {exc}:", reply_markup=cancel_kb())
        return
    await state.update_data(q_options=options)
    await state.set_state(AdminQuestionStates.choose_required)
    await message.answer("Is an answer required?", reply_markup=question_required_kb())


@router.callback_query(QuestionCb.filter(F.action == "req"), AdminQuestionStates.choose_required)
async def cq_question_required(callback: CallbackQuery, callback_data: QuestionCb, nav: NavContext) -> None:
    data = await nav.state.get_data()
    try:
        form = QuestionData(
            label=data["q_label"],
            kind=data["q_kind"],
            required=callback_data.value == "1",
            options=data.get("q_options"),
        )
    except ValidationError as exc:
        await callback.answer(first_error(exc), show_alert=True)
        return

    question = await add_program_question(
        nav.session, data["q_pid"], form.label, form.kind, form.required, form.options
    )
    logger.info("Question %s added to program %s", question.id, data["q_pid"])
    await nav.state.set_state(None)
    await nav.state.update_data(q_pid=None, q_label=None, q_kind=None, q_options=None)
    await callback.answer("✅ Question added")
    await navigator.navigate(nav, f"/admin/programs/{data['q_pid']}/questions")


@router.callback_query(QuestionCb.filter(F.action == "del"))
async def cq_question_delete(callback: CallbackQuery, callback_data: QuestionCb, nav: NavContext) -> None:
    deleted = await delete_program_question(nav.session, callback_data.qid)
    if deleted:
        logger.info("Question %s removed from program %s", callback_data.qid, callback_data.pid)
    await callback.answer("Removed" if deleted else "Already removed")
    await navigator.navigate(nav, f"/admin/programs/{callback_data.pid}/questions")
