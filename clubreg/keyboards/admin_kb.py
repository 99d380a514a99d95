"""
Keyboards for the admin back-office: programs and registration review.
"""
from typing import List

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from clubreg.keyboards.callbacks import FormCb, ProgramCb, ProgramEditCb, QuestionCb, RegFilterCb, RegistrationCb
from clubreg.keyboards.main_menu import nav_button
from clubreg.models.models import Program, ProgramQuestion, QuestionKind, Registration, RegistrationStatus


def admin_menu_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(nav_button("🏅 Programs",          "/admin/programs"))
    builder.row(nav_button("➕ New program",       "/admin/programs/new"))
    builder.row(nav_button("📋 All registrations", "/admin/registrations"))
    builder.row(nav_button("🔙 Dashboard",         "/dashboard"))
    return builder.as_markup()


def admin_programs_kb(programs: List[Program]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for p in programs:
        builder.row(
            InlineKeyboardButton(
                text=f"{p.status_emoji} {p.name}",
                callback_data=ProgramCb(action="toggle", pid=p.id).pack(),
            ),
            nav_button("✏️", f"/admin/programs/{p.id}/edit"),
            nav_button("📋", f"/admin/programs/{p.id}/registrations"),
        )
    builder.row(nav_button("➕ New program", "/admin/programs/new"))
    builder.row(nav_button("🔙 Back",        "/admin"))
    return builder.as_markup()


def status_filter_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="All", callback_data=RegFilterCb(status="").pack()),
        *[
            InlineKeyboardButton(
                text=f"{RegistrationStatus.EMOJI[s]} {s.title()}",
                callback_data=RegFilterCb(status=s).pack(),
            )
            for s in (RegistrationStatus.PENDING, RegistrationStatus.CONFIRMED, RegistrationStatus.CANCELLED)
        ],
    )
    return builder.as_markup()


def admin_registrations_kb(
    registrations: List[Registration],
    back_path: str = "/admin",
    with_filter: bool = True,
) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    if with_filter:
        builder.row(*status_filter_kb().inline_keyboard[0])
    for r in registrations:
        builder.row(
            InlineKeyboardButton(
                text=f"{r.status_emoji} {r.participant.full_name} · {r.program.name}",
                callback_data=RegistrationCb(action="view", rid=r.id).pack(),
            )
        )
    builder.row(nav_button("🔙 Back", back_path))
    return builder.as_markup()


def registration_admin_kb(registration: Registration) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    buttons = []
    if registration.status != RegistrationStatus.CONFIRMED:
        buttons.append(InlineKeyboardButton(
            text="✅ Confirm",
            callback_data=RegistrationCb(action="confirm", rid=registration.id).pack(),
        ))
    if registration.status != RegistrationStatus.CANCELLED:
        buttons.append(InlineKeyboardButton(
            text="❌ Cancel",
            callback_data=RegistrationCb(action="cancel", rid=registration.id).pack(),
        ))
    if buttons:
        builder.row(*buttons)
    builder.row(nav_button("🔙 Back", f"/admin/programs/{registration.program_id}/registrations"))
    return builder.as_markup()


# Program fields editable one at a time, in display order
EDITABLE_FIELDS = (
    ("name",                  "🏅 Name"),
    ("description",           "📝 Description"),
    ("start_date",            "📅 Start date"),
    ("end_date",              "🏁 End date"),
    ("registration_deadline", "⏰ Deadline"),
    ("location",              "📍 Location"),
    ("price",                 "💵 Price"),
    ("capacity",              "👥 Capacity"),
    ("waiver_text",           "📜 Waiver"),
)


def program_edit_kb(program: Program) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    buttons = [
        InlineKeyboardButton(text=label, callback_data=ProgramEditCb(pid=program.id, field=field).pack())
        for field, label in EDITABLE_FIELDS
    ]
    for i in range(0, len(buttons), 2):
        builder.row(*buttons[i:i + 2])
    builder.row(nav_button("❓ Registration questions", f"/admin/programs/{program.id}/questions"))
    builder.row(nav_button("🔙 Programs", "/admin/programs"))
    return builder.as_markup()


def questions_kb(program_id: int, questions: List[ProgramQuestion]) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    for q in questions:
        builder.row(
            InlineKeyboardButton(
                text=f"🗑 {q.label}",
                callback_data=QuestionCb(action="del", pid=program_id, qid=q.id).pack(),
            )
        )
    builder.row(
        InlineKeyboardButton(
            text="➕ Add question",
            callback_data=QuestionCb(action="add", pid=program_id).pack(),
        )
    )
    builder.row(nav_button("🔙 Back", f"/admin/programs/{program_id}/edit"))
    return builder.as_markup()


def question_kind_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(*[
        InlineKeyboardButton(
            text=QuestionKind.LABELS[kind],
            callback_data=QuestionCb(action="kind", value=kind).pack(),
        )
        for kind in QuestionKind.ALL
    ])
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=FormCb(action="cancel").pack()))
    return builder.as_markup()


def question_required_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="❗️ Required", callback_data=QuestionCb(action="req", value="1").pack()),
        InlineKeyboardButton(text="Optional",   callback_data=QuestionCb(action="req", value="0").pack()),
    )
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=FormCb(action="cancel").pack()))
    return builder.as_markup()
