"""
Keyboards for sign-up, sign-in and the profile forms.
"""
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from clubreg.keyboards.callbacks import FormCb, GenderCb, RoleCb
from clubreg.models.models import Gender, Role


def cancel_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=FormCb(action="cancel").pack()))
    return builder.as_markup()


def skip_kb(text: str = "⏭ Skip") -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text=text,        callback_data=FormCb(action="skip").pack()),
        InlineKeyboardButton(text="❌ Cancel", callback_data=FormCb(action="cancel").pack()),
    )
    return builder.as_markup()


def confirm_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="✅ Save",  callback_data=FormCb(action="confirm").pack()),
        InlineKeyboardButton(text="✏️ Edit",  callback_data=FormCb(action="edit").pack()),
    )
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=FormCb(action="cancel").pack()))
    return builder.as_markup()


def role_kb() -> InlineKeyboardMarkup:
    """Self-service roles offered on the sign-up screen."""
    builder = InlineKeyboardBuilder()
    for role in Role.SELF_SERVICE:
        builder.row(
            InlineKeyboardButton(text=Role.LABELS[role], callback_data=RoleCb(role=role).pack())
        )
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=FormCb(action="cancel").pack()))
    return builder.as_markup()


def gender_kb() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(
        InlineKeyboardButton(text="👨 Male",   callback_data=GenderCb(gender=Gender.MALE).pack()),
        InlineKeyboardButton(text="👩 Female", callback_data=GenderCb(gender=Gender.FEMALE).pack()),
    )
    builder.row(
        InlineKeyboardButton(text=Gender.LABELS[Gender.OTHER], callback_data=GenderCb(gender=Gender.OTHER).pack())
    )
    builder.row(InlineKeyboardButton(text="❌ Cancel", callback_data=FormCb(action="cancel").pack()))
    return builder.as_markup()
