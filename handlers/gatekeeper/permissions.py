from typing import List

from aiogram import types
from aiogram.exceptions import TelegramAPIError
from loguru import logger

from .context import Context
from .exceptions import PermissionError

REQUIRED_PERMISSIONS = [
    "can_delete_messages",
    "can_invite_users",
    "can_restrict_members",
]


async def ensure_bot_permissions(ctx: Context) -> None:
    """
    检查机器人在入口群的权限，缺少时抛出 PermissionError
    """
    me = await ctx.bot.get_me()
    member = await ctx.bot.get_chat_member(ctx.spaces.entry, me.id)

    # 群主拥有全部权限
    if isinstance(member, types.ChatMemberOwner):
        return

    missing: List[str] = [i for i in REQUIRED_PERMISSIONS if not getattr(member, i, False)]
    if missing:
        raise PermissionError(
            f"Bot lacks permissions in entry group: {', '.join(missing)}", ctx.spaces.entry, me.id
        )


async def check_bot_permissions(ctx: Context) -> bool:
    """启动时检查，问题只报告给管理员，不做修复"""
    try:
        await ensure_bot_permissions(ctx)
    except PermissionError as e:
        logger.error(str(e))
        await ctx.audit.report(str(e))
        return False
    except TelegramAPIError as e:
        logger.error(f"Error checking bot permissions: {e}")
        await ctx.audit.report(f"Error checking bot permissions: {e}")
        return False

    logger.info("Bot has all required permissions in entry group")
    return True
