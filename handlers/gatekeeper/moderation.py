"""
入口群发言过滤
Moderation filter

入口群内非管理员的普通文本一律删除，命令交给各自的处理器。
"""

from typing import Optional

from aiogram.exceptions import TelegramAPIError
from loguru import logger

from .config import COMMAND_PREFIX, Outcome, SpaceRole
from .context import Context
from .models import Member


async def moderate(ctx: Context, chat_id: int, user: Member, message_id: int,
                   text: Optional[str]) -> Optional[Outcome]:
    """
    Returns:
        Optional[Outcome]: 处理结果，未处理返回None
    """
    if not ctx.spaces.is_entry(chat_id):
        return None

    if user.is_bot:
        logger.debug(f"chat {chat_id} message {message_id} from bot {user.id} ignored")
        return None

    text = text or ""
    if text.startswith(COMMAND_PREFIX):
        logger.debug(f"chat {chat_id} message {message_id} command skipped: {text}")
        return None

    if await ctx.oracle.is_admin(SpaceRole.ENTRY, user.id):
        return None

    try:
        await ctx.bot.delete_message(chat_id, message_id)
    except TelegramAPIError as e:
        logger.warning(f"chat {chat_id} message {message_id} delete failed:{e}")
        await ctx.audit.record(
            Outcome.ERROR,
            user,
            f"Failed to delete message from {user.handle} (ID: {user.id}) - {e}",
        )
        return Outcome.ERROR

    await ctx.audit.record(Outcome.MODERATED, user, f'{user.describe()} message "{text}" deleted')
    return Outcome.MODERATED
