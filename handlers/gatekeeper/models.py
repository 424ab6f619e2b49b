from configparser import ConfigParser
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from aiogram import types
from aiogram.enums import ChatMemberStatus

from .config import SpaceRole
from .exceptions import ConfigError


class MemberStatus(str, Enum):
    """用户在某个群组内的状态"""

    NONE = "none"
    MEMBER = "member"
    ADMIN = "admin"
    OWNER = "owner"

    @property
    def is_present(self) -> bool:
        return self != MemberStatus.NONE

    @property
    def is_admin(self) -> bool:
        return self in (MemberStatus.ADMIN, MemberStatus.OWNER)

    @classmethod
    def from_chat_member(cls, member: types.ChatMember) -> "MemberStatus":
        # restricted / left / kicked 都不算在群内
        status = getattr(member, "status", None)
        if status == ChatMemberStatus.CREATOR:
            return cls.OWNER
        if status == ChatMemberStatus.ADMINISTRATOR:
            return cls.ADMIN
        if status == ChatMemberStatus.MEMBER:
            return cls.MEMBER
        return cls.NONE


@dataclass(frozen=True)
class Member:
    id: int
    username: Optional[str] = None
    full_name: str = ""
    is_bot: bool = False

    @property
    def handle(self) -> str:
        return f"@{self.username}" if self.username else str(self.id)

    def describe(self) -> str:
        return f"User {self.handle} (ID: {self.id})"

    @classmethod
    def from_user(cls, user: types.User) -> "Member":
        return cls(id=user.id, username=user.username, full_name=user.full_name, is_bot=user.is_bot)


@dataclass(frozen=True)
class Spaces:
    """
    群组 ID 在加载配置时解析一次，之后只按角色比较
    """

    entry: int
    companion: int
    main: int
    operator: Optional[int] = None

    def chat_id(self, role: SpaceRole) -> int:
        return getattr(self, role.value)

    def role_of(self, chat_id: int) -> Optional[SpaceRole]:
        for role in SpaceRole:
            if self.chat_id(role) == chat_id:
                return role
        return None

    def is_entry(self, chat_id: int) -> bool:
        return self.role_of(chat_id) == SpaceRole.ENTRY

    @classmethod
    def from_config(cls, config: ConfigParser) -> "Spaces":
        values = {}
        for role in SpaceRole:
            raw = config.get("groups", role.value, fallback="").strip()
            if not raw:
                raise ConfigError(f"groups.{role.value} is missing")
            try:
                values[role.value] = int(raw)
            except ValueError:
                raise ConfigError(f"groups.{role.value} is not a chat id: {raw}")

        operator = config.get("telegram", "admin", fallback="").strip()
        try:
            values["operator"] = int(operator) if operator else None
        except ValueError:
            raise ConfigError(f"telegram.admin is not a chat id: {operator}")

        return cls(**values)
