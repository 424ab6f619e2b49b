from aiogram import types
from aiogram.filters import Command

from manager import manager
from ..gatekeeper import Context
from ..gatekeeper.config import STATS_DENIED_TEXT, STATS_TEXT, WRONG_CHAT_TEXT, SpaceRole
from ..gatekeeper.flow import reply

logger = manager.logger


async def render_stats(ctx: Context, chat_id: int, user_id: int) -> str:
    if not ctx.spaces.is_entry(chat_id):
        return WRONG_CHAT_TEXT % {"command": "stats"}

    if not await ctx.oracle.is_admin(SpaceRole.ENTRY, user_id):
        return STATS_DENIED_TEXT

    return STATS_TEXT % {"count": ctx.stats.verifications}


@manager.register("message", Command("stats", ignore_case=True))
async def stats(msg: types.Message, ctx: Context):
    """验证统计，仅入口群管理员可用"""
    user = msg.from_user
    if not user:
        return

    with ctx.track():
        content = await render_stats(ctx, msg.chat.id, user.id)
        await reply(ctx, msg.chat.id, content)
    logger.info(f"[stats]chat {msg.chat.id}({msg.chat.title}) msg {msg.message_id} user {user.id}({user.full_name})")
