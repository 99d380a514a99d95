"""
Keyboards for programs, participants and a member's registrations.
"""
from typing import List

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from clubreg.keyboards.callbacks import AnswerCb, FormCb, ParticipantCb, ProgramCb, RegistrationCb
from clubreg.keyboards.main_menu import nav_button
from clubreg.models.models import Participant, Program, QuestionKind, Registration, RegistrationStatus


def program_list_kb(programs: List[Program], back_path: str = "/") -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for p in programs:
        builder.row(
            InlineKeyboardButton(
                text=f"{p.status_emoji} {p.name}",
                callback_data=ProgramCb(action="view", pid=p.id).pack(),
            )
        )
    builder.row(nav_button("🔙 Back", back_path))
    return builder.as_markup()


def program_detail_kb(program: Program, can_register: bool) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    if can_register:
        builder.row(nav_button("📝 Register", f"/programs/{program.id}/register"))
    builder.row(nav_button("🔙 All programs", "/programs"))
    return builder.as_markup()


def participant_pick_kb(participants: List[Participant], program_id: int) -> InlineKeyboardMarkup:
    """Choose who is being registered for `program_id`."""
    builder = InlineKeyboardBuilder()
    for p in participants:
        builder.row(
            InlineKeyboardButton(
                text=f"👤 {p.full_name}",
                callback_data=ParticipantCb(action="pick", pid=p.id, prg=program_id).pack(),
            )
        )
    builder.row(nav_button("➕ Add a participant", "/participants/new"))
    builder.row(nav_button("🔙 All programs", "/programs"))
    return builder.as_markup()


def participants_kb(participants: List[Participant]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for p in participants:
        marker = "⭐️" if p.is_account_holder else "👤"
        builder.row(
            InlineKeyboardButton(
                text=f"{marker} {p.full_name}",
                callback_data=ParticipantCb(action="view", pid=p.id).pack(),
            )
        )
    builder.row(nav_button("➕ Add a participant", "/participants/new"))
    builder.row(nav_button("🔙 Back", "/dashboard"))
    return builder.as_markup()


def my_registrations_kb(registrations: List[Registration]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for r in registrations:
        if r.status == RegistrationStatus.CANCELLED:
            continue
        builder.row(
            InlineKeyboardButton(
                text=f"🚫 Withdraw {r.participant.first_name} from {r.program.name}",
                callback_data=RegistrationCb(action="withdraw", rid=r.id).pack(),
            )
        )
    builder.row(nav_button("🏅 Programs", "/programs"))
    builder.row(nav_button("🔙 Back", "/dashboard"))
    return builder.as_markup()


def question_answer_kb(question: dict) -> InlineKeyboardMarkup:
    """
    Buttons for one registration question (see the reg_questions FSM entry).
    Text questions are answered by message and only get skip / cancel.
    """
    builder = InlineKeyboardBuilder()
    if question["kind"] == QuestionKind.SELECT:
        for i, option in enumerate(question["options"] or []):
            builder.row(InlineKeyboardButton(text=option, callback_data=AnswerCb(value=str(i)).pack()))
    elif question["kind"] == QuestionKind.CHECKBOX:
        builder.row(
            InlineKeyboardButton(text="✅ Yes", callback_data=AnswerCb(value="yes").pack()),
            InlineKeyboardButton(text="⬜️ No",  callback_data=AnswerCb(value="no").pack()),
        )
    if not question["required"] and question["kind"] != QuestionKind.CHECKBOX:
        builder.row(InlineKeyboardButton(text="⏭ Skip", callback_data=FormCb(action="skip").pack()))
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=FormCb(action="cancel").pack()))
    return builder.as_markup()


def waiver_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="✅ I accept", callback_data=FormCb(action="confirm").pack()))
    builder.row(InlineKeyboardButton(text="❌ Cancel",   callback_data=FormCb(action="cancel").pack()))
    return builder.as_markup()
