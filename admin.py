# admin.py
from __future__ import annotations

from typing import Awaitable, Callable, List, Optional

from aiogram import Router
from aiogram.filters import Command, CommandObject
from aiogram.types import BufferedInputFile, Message
from aiogram.exceptions import TelegramAPIError
from loguru import logger

from chat import AnonChat
from config import Config
from errors import AdminActionError
from handlers import notify_left, pairing_notices
from keyboards import chat_menu
from messenger import Messenger
from storage import Persister, export_json

router = Router(name="admin")

ShutdownHook = Callable[[], Awaitable[None]]

ADMIN_HELP = (
    "⚙️ k-Anony Admin Panel\n\n"
    "Commands:\n"
    "/stats - show counts\n"
    "/list_users - list user summaries (first 50)\n"
    "/list_waiting - show waiting queue\n"
    "/ban <userId> - ban a user\n"
    "/unban <userId> - unban a user\n"
    "/forcepair <idA> <idB> - pair two users\n"
    "/broadcast <text> - send message to all users (use carefully)\n"
    "/export - save a data export and send file\n"
    "/shutdown - gracefully stop bot"
)


async def require_admin(m: Message, config: Config) -> bool:
    if config.is_admin(m.from_user.id):
        return True
    await m.answer("⛔ You are not an admin.")
    return False


def parse_ids(args: Optional[str], count: int) -> Optional[List[int]]:
    parts = (args or "").split()
    if len(parts) < count:
        return None
    try:
        return [int(x) for x in parts[:count]]
    except ValueError:
        return None


@router.message(Command("admin"))
async def admin_panel(m: Message, config: Config):
    if not await require_admin(m, config):
        return
    await m.answer(ADMIN_HELP)


@router.message(Command("stats"))
async def admin_stats(m: Message, config: Config, chat: AnonChat):
    if not await require_admin(m, config):
        return
    s = await chat.stats()
    await m.answer(
        "📊 Stats\n"
        f"• Users saved: {s['users']}\n"
        f"• Waiting: {s['waiting']}\n"
        f"• Currently paired entries: {s['pairs']}\n"
        f"• Banned: {s['banned']}"
    )


@router.message(Command("list_waiting"))
async def admin_list_waiting(m: Message, config: Config, chat: AnonChat):
    if not await require_admin(m, config):
        return
    ids = await chat.waiting_list()
    listing = "\n".join(f"{i}. {uid}" for i, uid in enumerate(ids, 1)) or "(empty)"
    await m.answer(f"🟡 Waiting queue:\n{listing}")


@router.message(Command("list_users"))
async def admin_list_users(m: Message, config: Config, chat: AnonChat):
    if not await require_admin(m, config):
        return
    rows = [
        f"{r.user_id} • gender:{r.gender.value} • ints:{','.join(r.interests) or 'none'} • partner:{r.partner_id or 'none'}"
        for r in await chat.user_list()
    ]
    await m.answer("👥 Users (first 50):\n" + ("\n".join(rows) or "(none)"))


@router.message(Command("ban"))
async def admin_ban(m: Message, command: CommandObject, config: Config, chat: AnonChat, messenger: Messenger):
    if not await require_admin(m, config):
        return
    ids = parse_ids(command.args, 1)
    if ids is None:
        await m.answer("Usage: /ban <userId>")
        return
    former = await chat.ban(ids[0])
    await notify_left(messenger, former)
    await m.answer(f"✅ Banned user {ids[0]}")


@router.message(Command("unban"))
async def admin_unban(m: Message, command: CommandObject, config: Config, chat: AnonChat):
    if not await require_admin(m, config):
        return
    ids = parse_ids(command.args, 1)
    if ids is None:
        await m.answer("Usage: /unban <userId>")
        return
    if await chat.unban(ids[0]):
        await m.answer(f"✅ Unbanned user {ids[0]}")
    else:
        await m.answer(f"User {ids[0]} was not banned.")


@router.message(Command("forcepair"))
async def admin_forcepair(m: Message, command: CommandObject, config: Config, chat: AnonChat, messenger: Messenger):
    if not await require_admin(m, config):
        return
    ids = parse_ids(command.args, 2)
    if ids is None:
        await m.answer("Usage: /forcepair <idA> <idB>")
        return
    a, b = ids
    try:
        result = await chat.force_pair(a, b)
    except AdminActionError as e:
        await m.answer(f"❌ {e}")
        return
    for partner_id in result.displaced:
        await notify_left(messenger, partner_id)
    await messenger.send_many(pairing_notices(result.pairing), reply_markup=chat_menu())
    await m.answer(f"✅ Forced pair {a} ↔ {b}")


@router.message(Command("broadcast"))
async def admin_broadcast(m: Message, command: CommandObject, config: Config, chat: AnonChat, messenger: Messenger):
    if not await require_admin(m, config):
        return
    text = (command.args or "").strip()
    if not text:
        await m.answer("Usage: /broadcast <text>")
        return
    ids = await chat.recipients()
    sent = await messenger.broadcast(ids, f"📢 Admin broadcast:\n\n{text}")
    logger.info("Broadcast by {} delivered to {}/{}", m.from_user.id, sent, len(ids))
    await m.answer(f"Broadcast sent to {sent}/{len(ids)} users.")


@router.message(Command("export"))
async def admin_export(m: Message, config: Config, chat: AnonChat, persister: Persister):
    if not await require_admin(m, config):
        return
    await persister.flush()
    doc = BufferedInputFile(export_json(await chat.snapshot()), filename="k-anony-export.json")
    try:
        await m.answer_document(doc, caption="k-Anony data export")
    except TelegramAPIError as e:
        logger.warning("Export to {} failed: {!r}", m.from_user.id, e)
        await m.answer(f"Failed to send export: {e}")


@router.message(Command("shutdown"))
async def admin_shutdown(m: Message, config: Config, persister: Persister, request_shutdown: ShutdownHook):
    if not await require_admin(m, config):
        return
    await m.answer("Shutting down bot (admin command).")
    logger.info("Shutdown requested by admin {}", m.from_user.id)
    await persister.flush()
    await request_shutdown()


__all__ = [
    "router",
    "require_admin",
    "parse_ids",
]
