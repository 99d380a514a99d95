"""
Main menu keyboards — context-aware (guest vs. member vs. admin).
"""
from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup
from aiogram.utils.keyboard import InlineKeyboardBuilder

from clubreg.keyboards.callbacks import NavCb


def nav_button(text: str, path: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=NavCb(path=path).pack())


def guest_menu() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(nav_button("🔑 Sign in",           "/login"))
    builder.row(nav_button("📝 Create an account", "/signup"))
    builder.row(nav_button("🏅 Browse programs",   "/programs"))
    return builder.as_markup()


def member_menu(is_admin: bool = False) -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(nav_button("🏅 Programs",         "/programs"))
    builder.row(nav_button("👨‍👩‍👧 My participants", "/participants"))
    builder.row(nav_button("📋 My registrations", "/registrations"))
    builder.row(nav_button("👤 My profile",       "/profile"))
    if is_admin:
        builder.row(nav_button("⚡ Admin panel", "/admin"))
    builder.row(InlineKeyboardButton(text="🚪 Sign out", callback_data="logout"))
    return builder.as_markup()


def incomplete_profile_menu() -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(nav_button("✏️ Complete my profile", "/complete-profile"))
    builder.row(InlineKeyboardButton(text="🚪 Sign out", callback_data="logout"))
    return builder.as_markup()


def back_kb(path: str = "/dashboard", text: str = "🔙 Back") -> InlineKeyboardMarkup:
    builder = InlineKeyboardBuilder()
    builder.row(nav_button(text, path))
    return builder.as_markup()
