"""
成员身份查询
Membership oracle

每次调用都实时查询平台，不做缓存；同一流程内的连续查询可能得到不同的结果。
"""

from aiogram import Bot
from aiogram.exceptions import TelegramAPIError
from loguru import logger

from .config import SpaceRole
from .exceptions import TransientError
from .models import MemberStatus, Spaces


class MembershipOracle:
    def __init__(self, bot: Bot, spaces: Spaces):
        self.bot = bot
        self.spaces = spaces

    async def query_membership(self, space: SpaceRole, user_id: int) -> MemberStatus:
        chat_id = self.spaces.chat_id(space)
        try:
            member = await self.bot.get_chat_member(chat_id, user_id)
        except TelegramAPIError as e:
            logger.warning(f"chat {chat_id}({space.value}) member {user_id} lookup failed:{e}")
            raise TransientError(str(e), chat_id, user_id) from e

        status = MemberStatus.from_chat_member(member)
        logger.debug(f"chat {chat_id}({space.value}) member {user_id} status is {status.value}")
        return status

    async def is_admin(self, space: SpaceRole, user_id: int) -> bool:
        """查询失败时视为非管理员"""
        try:
            return (await self.query_membership(space, user_id)).is_admin
        except TransientError:
            return False
