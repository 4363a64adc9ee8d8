# handlers.py
from __future__ import annotations

from typing import List, Optional

from aiogram import F, Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.types import CallbackQuery, LabeledPrice, Message, PreCheckoutQuery
from loguru import logger

from chat import AnonChat
from config import Config
from keyboards import (
    BTN_FIND, BTN_NEXT, BTN_PREMIUM, BTN_PROFILE, BTN_STOP,
    GENDER_CB_PREFIX, chat_menu, gender_kb, main_menu,
)
from matching import MatchOutcome, MatchStatus, Pairing
from messenger import Messenger, Notice
from models import Gender, gender_label, now_ms, parse_gender, parse_interests
from relay import RelayStatus

router = Router(name="user")

PAYLOAD_PREFIX = "girls_"

WELCOME_TEXT = (
    "👋 Welcome to k-Anony: anonymous chat with matching.\n\n"
    "Commands:\n"
    "/start - find a partner\n"
    "/next - skip to next\n"
    "/stop - end chat\n"
    "/gender <girl|boy|other> - set your gender\n"
    "/interests <tags> - set interests, e.g. /interests roblox, anime\n"
    "/profile - view your settings\n"
    "/girls - buy {hours} hours of girl-only matching ({price} ⭐)\n"
    "/premium - check premium status\n\n"
    "Note: Gender is self-declared."
)

BANNED_TEXT = "⛔ You are banned from using this bot."
PARTNER_LEFT_TEXT = "⚠️ The stranger left the chat.\nSend /start to find a new one."
CHAT_HINT = "\n\nUse /next to skip, /stop to end."


# ============================================================
#                     NOTICE FORMATTING
# ============================================================

def _interest_line(shared, theirs) -> str:
    if shared:
        return "You share interests: " + ", ".join(shared)
    if theirs:
        return "Their interests: " + ", ".join(sorted(theirs))
    return "They did not set any interests."


def pairing_notices(p: Pairing) -> List[Notice]:
    for_a = (
        f"✅ Connected to a stranger ({gender_label(p.b_gender)}).\n"
        + _interest_line(p.shared, p.b_interests) + CHAT_HINT
    )
    for_b = (
        f"✅ Connected to a stranger ({gender_label(p.a_gender)}).\n"
        + _interest_line(p.shared, p.a_interests) + CHAT_HINT
    )
    return [(p.a, for_a), (p.b, for_b)]


def match_reply(outcome: MatchOutcome) -> Optional[str]:
    """Text for the requester; None when the pairing notices say it all."""
    if outcome.status == MatchStatus.BANNED:
        return BANNED_TEXT
    if outcome.status == MatchStatus.ALREADY_PAIRED:
        return "You are already chatting with someone.\nUse /next to find another person."
    if outcome.status == MatchStatus.QUEUED:
        return "⌛ Waiting for another user…\nTip: Set your /gender and /interests for better matches."
    if outcome.status == MatchStatus.NO_SUITABLE_MATCH:
        return "⌛ Waiting for a suitable user to connect you with…"
    return None


async def report_match(m: Message, outcome: MatchOutcome, messenger: Messenger) -> None:
    if outcome.pairing is not None:
        await messenger.send_many(pairing_notices(outcome.pairing), reply_markup=chat_menu())
        return
    markup = chat_menu() if outcome.queued else None
    await m.answer(match_reply(outcome), reply_markup=markup)


async def notify_left(messenger: Messenger, partner_id: Optional[int]) -> None:
    if partner_id is not None:
        await messenger.send(partner_id, PARTNER_LEFT_TEXT, reply_markup=main_menu())


# ============================================================
#                       BASIC COMMANDS
# ============================================================

@router.message(CommandStart())
async def cmd_start(m: Message, chat: AnonChat, messenger: Messenger, config: Config):
    await m.answer(
        WELCOME_TEXT.format(hours=config.premium_hours, price=config.premium_price_stars),
        reply_markup=main_menu(),
    )
    await report_match(m, await chat.start(m.from_user.id), messenger)


@router.message(Command("help"))
async def cmd_help(m: Message, config: Config):
    await m.answer(
        WELCOME_TEXT.format(hours=config.premium_hours, price=config.premium_price_stars),
        reply_markup=main_menu(),
    )


@router.message(F.text == BTN_FIND)
@router.message(Command("find"))
async def find(m: Message, chat: AnonChat, messenger: Messenger):
    await report_match(m, await chat.start(m.from_user.id), messenger)


@router.message(F.text == BTN_NEXT)
@router.message(Command("next"))
async def cmd_next(m: Message, chat: AnonChat, messenger: Messenger):
    result = await chat.next(m.from_user.id)
    await notify_left(messenger, result.former_partner)
    if result.match.status != MatchStatus.BANNED:
        await m.answer("⏭ Searching for a new partner…")
    await report_match(m, result.match, messenger)


@router.message(F.text == BTN_STOP)
@router.message(Command("stop"))
async def cmd_stop(m: Message, chat: AnonChat, messenger: Messenger):
    result = await chat.stop(m.from_user.id)
    await notify_left(messenger, result.former_partner)
    await m.answer(
        "👋 Chat ended. Use /start to chat again later. Your gender and interests are saved.",
        reply_markup=main_menu(),
    )


# ============================================================
#                          PROFILE
# ============================================================

@router.message(Command("gender"))
async def cmd_gender(m: Message, command: CommandObject, chat: AnonChat):
    if not (command.args or "").strip():
        await m.answer("Choose your gender:", reply_markup=gender_kb())
        return
    gender = parse_gender(command.args)
    if gender is None:
        await m.answer("Unknown gender. Use: /gender girl | boy | other")
        return
    await chat.set_gender(m.from_user.id, gender)
    await m.answer(f"✅ Gender set to: {gender.value}")


@router.callback_query(F.data.startswith(GENDER_CB_PREFIX))
async def cb_gender(c: CallbackQuery, chat: AnonChat):
    gender = parse_gender(c.data[len(GENDER_CB_PREFIX):])
    if gender is None or gender == Gender.UNKNOWN:
        await c.answer("Unknown gender.")
        return
    await chat.set_gender(c.from_user.id, gender)
    await c.answer()
    if isinstance(c.message, Message):
        await c.message.edit_text(f"✅ Gender set to: {gender.value}")


@router.message(Command("interests"))
async def cmd_interests(m: Message, command: CommandObject, chat: AnonChat):
    tokens = parse_interests(command.args)
    if not tokens:
        await m.answer("Usage: /interests roblox, anime, gaming\nSeparate interests with commas or spaces.")
        return
    await chat.set_interests(m.from_user.id, tokens)
    await m.answer(f"✅ Interests updated: {', '.join(tokens)}\nNew matches will try to share some of these.")


@router.message(F.text == BTN_PROFILE)
@router.message(Command("profile"))
async def cmd_profile(m: Message, chat: AnonChat):
    view = await chat.view_profile(m.from_user.id)
    premium_text = f"girl-only active ({view.premium_hours}h left)" if view.premium_hours else "no"
    await m.answer(
        "🧾 Your profile:\n"
        f"• Gender: {view.gender.value}\n"
        f"• Interests: {', '.join(view.interests) if view.interests else 'none'}\n"
        f"• Premium: {premium_text}"
    )


# ============================================================
#                          PREMIUM
# ============================================================

@router.message(Command("premium"))
async def cmd_premium(m: Message, chat: AnonChat, config: Config):
    hours = await chat.premium_status(m.from_user.id)
    if hours is None:
        await m.answer(
            "❌ No active premium subscription.\n"
            f"Use /girls to buy {config.premium_hours} hours of girl-only matching ({config.premium_price_stars} ⭐)."
        )
        return
    await m.answer(f"⭐ Premium active!\nGirl-only matching enabled.\n⏳ Time left: ~{hours} hour(s).")


@router.message(F.text == BTN_PREMIUM)
@router.message(Command("girls"))
async def cmd_girls(m: Message, config: Config):
    title = f"Girl-Only Matching ({config.premium_hours} hours)"
    await m.answer_invoice(
        title=title,
        description=f"Match only with girls for {config.premium_hours} hours. Digital feature, non-refundable.",
        payload=f"{PAYLOAD_PREFIX}{m.from_user.id}_{now_ms()}",
        provider_token="",  # empty for Telegram Stars
        currency="XTR",
        prices=[LabeledPrice(label=title, amount=config.premium_price_stars)],
    )


@router.pre_checkout_query()
async def pre_checkout(q: PreCheckoutQuery):
    if not (q.invoice_payload or "").startswith(PAYLOAD_PREFIX):
        await q.answer(ok=False, error_message="Unknown purchase.")
        return
    await q.answer(ok=True)


@router.message(F.successful_payment)
async def successful_payment(m: Message, chat: AnonChat, config: Config):
    await chat.premium_confirmed(m.from_user.id)
    logger.info("Premium granted to {} ({} stars)", m.from_user.id, m.successful_payment.total_amount)
    await m.answer(
        "✅ Payment successful!\n"
        f"You can now match ONLY WITH GIRLS for the next {config.premium_hours} hours.\n"
        "Use /start to find your premium match 💖\n"
        "Note: Gender is self-declared by users and cannot be guaranteed."
    )


# ============================================================
#                       RELAY / CHAT
# ============================================================

@router.message(F.text)
async def relay_chat(m: Message, chat: AnonChat, messenger: Messenger):
    if m.text.startswith("/"):
        await m.answer("Unknown command. Send /help for the list.")
        return

    result = await chat.send_text(m.from_user.id, m.text)
    if result.banned:
        await m.answer(BANNED_TEXT)
        return
    if result.relay.status == RelayStatus.NO_PARTNER:
        await m.answer("I am still looking for a partner.\nUse /start to find one.")
        return
    if result.relay.status == RelayStatus.DELIVERY_FAILED:
        await m.answer("Could not deliver message. Partner might be offline. Searching for a new partner…")
        await report_match(m, result.rematch, messenger)


__all__ = [
    "router",
    "pairing_notices",
    "match_reply",
    "report_match",
    "notify_left",
]
