"""
入口群验证流程
Gatekeeper verification flow

入口群新成员 -> 加入姊妹群 -> /verify -> 获得主群邀请链接 -> 确认已进入主群 -> 移出入口群
"""

from typing import List, Optional

from aiogram import types
from aiogram.exceptions import TelegramAPIError
from loguru import logger

from .config import (
    APOLOGY_TEXT, INVITE_ERROR_TEXT, JOIN_FIRST_TEXT, RATE_LIMITED_TEXT, SUCCESS_TEXT,
    WELCOME_TEXT, WRONG_CHAT_TEXT, Outcome, SpaceRole, VerificationState,
)
from .context import Context
from .exceptions import EmptyResult, LogContext, PreconditionFailed
from .models import Member
from .retry import poll_until


async def reply(ctx: Context, chat_id: int, content: str) -> Optional[types.Message]:
    """发送消息，失败只记录日志"""
    try:
        return await ctx.bot.send_message(chat_id, content)
    except TelegramAPIError:
        logger.exception(f"chat {chat_id} message {content!r} send error")
        return None


async def export_invite_link(ctx: Context, role: SpaceRole, single_use: bool = False) -> str:
    chat_id = ctx.spaces.chat_id(role)
    if single_use:
        invite = await ctx.bot.create_chat_invite_link(chat_id, member_limit=1)
        link = invite.invite_link if invite else None
    else:
        link = await ctx.bot.export_chat_invite_link(chat_id)

    if not link:
        raise EmptyResult(f"Generated {role.value} group link is empty", chat_id)
    return link


async def welcome(ctx: Context, chat_id: int, sender: Member, members: List[Member]) -> Optional[int]:
    """
    入口群新成员欢迎

    Args:
        ctx: 上下文
        chat_id: 群组ID
        sender: 触发事件的用户
        members: 新加入的成员

    Returns:
        Optional[int]: 欢迎消息ID，未发送返回None
    """
    if not ctx.spaces.is_entry(chat_id):
        logger.info(f"chat {chat_id} new members ignored: not entry group")
        return None

    # 忽略机器人触发的事件
    if sender.is_bot or all(i.is_bot for i in members):
        logger.info(f"chat {chat_id} new members from bot {sender.id} ignored")
        return None

    log = LogContext(chat_id, sender.id, sender.username, "[welcome]")

    try:
        link = await export_invite_link(ctx, SpaceRole.COMPANION)
        msg = await ctx.bot.send_message(chat_id, WELCOME_TEXT % {"link": link})
    except (TelegramAPIError, EmptyResult) as e:
        logger.error(f"{log.log_prefix} | invite link failed | {e}")
        await reply(ctx, chat_id, INVITE_ERROR_TEXT)
        await ctx.audit.report(f"Error generating Group A invite link for user {sender.id}: {e}")
        return None

    ctx.lifecycle.schedule_delete(chat_id, msg.message_id, ctx.notice_ttl)
    logger.info(f"{log.log_prefix} | welcome sent | message:{msg.message_id}")
    return msg.message_id


class VerificationFlow:
    """
    单个用户的一次 /verify

    IDLE -> CHALLENGED -> (RATE_LIMITED)
         -> CHECKING_COMPANION -> (REJECTED)
         -> GRANTED_PENDING_CONFIRMATION -> CONFIRMED_AND_EVICTED
    任意步骤的意外错误 -> ERROR_REPORTED
    轮询耗尽时停在 GRANTED_PENDING_CONFIRMATION
    """

    def __init__(self, ctx: Context, chat_id: int, user: Member,
                 message_id: Optional[int] = None):
        self.ctx = ctx
        self.chat_id = chat_id
        self.user = user
        self.message_id = message_id

        self.state = VerificationState.IDLE
        self.history = [self.state]
        self.polls = 0
        self.log = LogContext(chat_id, user.id, user.username, "[verify]")

    def transition(self, state: VerificationState):
        logger.debug(f"{self.log.log_prefix} | {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    async def run(self) -> VerificationState:
        ctx = self.ctx
        self.transition(VerificationState.CHALLENGED)

        decision = ctx.limiter.try_acquire(self.user.id, ctx.clock())
        if not decision.allowed:
            self.transition(VerificationState.RATE_LIMITED)
            logger.info(f"{self.log.log_prefix} | rate limited | {decision.seconds_remaining}s")
            await reply(ctx, self.chat_id, RATE_LIMITED_TEXT % {"seconds": decision.seconds_remaining})
            return self.state

        try:
            await self.check_companion()
            await self.grant()
            await self.confirm_and_evict()
        except PreconditionFailed as e:
            await self.reject(e)
        except Exception as e:
            await self.report_error(e)

        return self.state

    async def check_companion(self):
        self.transition(VerificationState.CHECKING_COMPANION)

        status = await self.ctx.oracle.query_membership(SpaceRole.COMPANION, self.user.id)
        if not status.is_present:
            raise PreconditionFailed("not in companion group", self.chat_id, self.user.id)

        logger.info(f"{self.log.log_prefix} | companion group status:{status.value}")

    async def grant(self):
        ctx = self.ctx

        link = await export_invite_link(ctx, SpaceRole.MAIN, ctx.single_use_invite)
        msg = await ctx.bot.send_message(self.chat_id, SUCCESS_TEXT % {"link": link})
        ctx.stats.verifications += 1
        self.transition(VerificationState.GRANTED_PENDING_CONFIRMATION)
        logger.info(f"{self.log.log_prefix} | invite link sent | total:{ctx.stats.verifications}")

        if self.message_id is not None:
            await ctx.lifecycle.delete_now(self.chat_id, self.message_id)

        ctx.lifecycle.schedule_delete(self.chat_id, msg.message_id, ctx.notice_ttl)

    async def confirm_and_evict(self):
        ctx = self.ctx
        user = self.user

        async def in_main_group() -> bool:
            self.polls += 1
            status = await ctx.oracle.query_membership(SpaceRole.MAIN, user.id)
            return status.is_present

        result = await poll_until(
            in_main_group,
            ctx.confirm_attempts,
            ctx.confirm_delay,
            sleep=ctx.sleep,
            log_prefix=self.log.log_prefix,
        )

        if not result.confirmed:
            await ctx.audit.record(
                Outcome.WARNING,
                user,
                f"{user.describe()} verified but not removed (not in main group after retries)",
            )
            return

        await ctx.bot.ban_chat_member(ctx.spaces.entry, user.id)
        self.transition(VerificationState.CONFIRMED_AND_EVICTED)

        await ctx.audit.record(
            Outcome.SUCCESS,
            user,
            f"{user.describe()} verified, joined main group, and removed from entry group",
            notice=f"{user.describe()} verified and moved to main group.",
        )

    async def reject(self, e: PreconditionFailed):
        self.transition(VerificationState.REJECTED)
        logger.info(f"{self.log.log_prefix} | rejected | {e}")

        await reply(self.ctx, self.chat_id, JOIN_FIRST_TEXT)
        await self.ctx.audit.record(Outcome.FAILED_PRECONDITION, self.user, f"{self.user.describe()} not in Group A")

    async def report_error(self, e: Exception):
        self.transition(VerificationState.ERROR_REPORTED)
        logger.error(f"{self.log.log_prefix} | verification error | {e}")

        await reply(self.ctx, self.chat_id, APOLOGY_TEXT)
        await self.ctx.audit.record(
            Outcome.ERROR,
            self.user,
            f"{self.user.describe()} - {e}",
            notice=f"Verification error for {self.user.describe()}: {e}",
        )


async def verify(ctx: Context, chat_id: int, user: Member, message_id: Optional[int] = None) -> Optional[VerificationFlow]:
    """
    /verify 入口，非入口群只提示
    """
    if not ctx.spaces.is_entry(chat_id):
        await reply(ctx, chat_id, WRONG_CHAT_TEXT % {"command": "verify"})
        return None

    flow = VerificationFlow(ctx, chat_id, user, message_id)
    await flow.run()
    return flow
