"""
入口群验证主模块
Gatekeeper main module

把 aiogram 事件转换为验证流程的调用，Context 由 dispatcher 注入。
"""

from aiogram import F, types
from aiogram.filters import Command
from loguru import logger

from manager import manager
from .config import COMMAND_PREFIX, SUPPORT_GROUP_TYPES
from .context import Context
from .flow import verify, welcome
from .models import Member
from .moderation import moderate


@manager.register("message", F.new_chat_members)
async def new_members(msg: types.Message, ctx: Context):
    """
    入口群新成员，发送姊妹群邀请链接
    """
    chat = msg.chat
    if chat.type not in SUPPORT_GROUP_TYPES or not msg.from_user:
        return

    logger.info(
        f"chat {chat.id}({chat.title}) msg {msg.message_id} new members from {msg.from_user.id}"
        f"(@{msg.from_user.username or 'Unknown'})"
    )

    members = [Member.from_user(i) for i in msg.new_chat_members or []]
    with ctx.track():
        await welcome(ctx, chat.id, Member.from_user(msg.from_user), members)


@manager.register("message", Command("verify", ignore_case=True))
async def verify_command(msg: types.Message, ctx: Context):
    if not msg.from_user:
        return

    logger.info(
        f"chat {msg.chat.id} msg {msg.message_id} verify command from {msg.from_user.id}"
        f"(@{msg.from_user.username or 'Unknown'})"
    )
    with ctx.track():
        await verify(ctx, msg.chat.id, Member.from_user(msg.from_user), msg.message_id)


# 命令交给各自的处理器
@manager.register("message", F.text & ~F.text.startswith(COMMAND_PREFIX))
async def entry_text(msg: types.Message, ctx: Context):
    if not msg.from_user:
        return

    with ctx.track():
        await moderate(ctx, msg.chat.id, Member.from_user(msg.from_user), msg.message_id, msg.text)
