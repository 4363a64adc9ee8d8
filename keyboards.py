# keyboards.py
from aiogram.types import (
    ReplyKeyboardMarkup, InlineKeyboardMarkup,
    KeyboardButton,
)
from aiogram.utils.keyboard import ReplyKeyboardBuilder, InlineKeyboardBuilder

# ====== BUTTON TEXTS ======
BTN_FIND = "🔎 Find a partner"
BTN_NEXT = "⏭ Next"
BTN_STOP = "⛔ Stop"
BTN_PROFILE = "👤 Profile"
BTN_PREMIUM = "⭐ Girls only"

GENDER_CHOICES = [("Girl", "girl"), ("Boy", "boy"), ("Other", "other")]
GENDER_CB_PREFIX = "gender:"


# ====== MAIN MENU (not chatting) ======
def main_menu() -> ReplyKeyboardMarkup:
    kb = ReplyKeyboardBuilder()
    kb.add(KeyboardButton(text=BTN_FIND))
    kb.add(KeyboardButton(text=BTN_PROFILE))
    kb.add(KeyboardButton(text=BTN_PREMIUM))
    kb.adjust(1, 2)
    return kb.as_markup(resize_keyboard=True)


# ====== CHAT MENU (paired or waiting) ======
def chat_menu() -> ReplyKeyboardMarkup:
    kb = ReplyKeyboardBuilder()
    kb.add(KeyboardButton(text=BTN_NEXT))
    kb.add(KeyboardButton(text=BTN_STOP))
    return kb.as_markup(resize_keyboard=True)


# ====== GENDER (Inline) ======
def gender_kb() -> InlineKeyboardMarkup:
    b = InlineKeyboardBuilder()
    for label, value in GENDER_CHOICES:
        b.button(text=label, callback_data=f"{GENDER_CB_PREFIX}{value}")
    b.adjust(3)
    return b.as_markup()
