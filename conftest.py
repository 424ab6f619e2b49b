import itertools
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from aiogram.exceptions import TelegramBadRequest

from handlers.gatekeeper.audit import AuditLog
from handlers.gatekeeper.context import Context
from handlers.gatekeeper.lifecycle import MessageLifecycle
from handlers.gatekeeper.models import Spaces
from handlers.gatekeeper.oracle import MembershipOracle
from handlers.gatekeeper.rate_limiter import RateLimiter

ENTRY = -1001
COMPANION = -1002
MAIN = -1003
OPERATOR = 5147724876
BOT_ID = 777


def telegram_error(message: str = "Bad Request: message to delete not found"):
    return TelegramBadRequest(method=MagicMock(), message=message)


class FakeBot:
    """记录所有调用的假 Bot"""

    def __init__(self):
        self.id = BOT_ID
        self.calls = []
        self.sent = []
        self.deleted = []
        self.banned = []
        self.invite_links = {COMPANION: "https://t.me/+companion", MAIN: "https://t.me/+main"}
        self.permissions = SimpleNamespace(
            status="administrator",
            can_delete_messages=True,
            can_invite_users=True,
            can_restrict_members=True,
        )
        self.fail_send = False
        self.fail_invite = False

        self._members = {}
        self._message_ids = itertools.count(1000)

    def set_member(self, chat_id: int, user_id: int, *statuses):
        """按顺序返回，最后一个会一直返回；Exception 会被抛出"""
        self._members[(chat_id, user_id)] = list(statuses)

    def polls(self, chat_id: int, user_id: int) -> int:
        return len([i for i in self.calls if i == ("get_chat_member", chat_id, user_id)])

    async def get_me(self):
        self.calls.append(("get_me",))
        return SimpleNamespace(id=BOT_ID, is_bot=True, username="gate_bot")

    async def get_chat_member(self, chat_id, user_id):
        self.calls.append(("get_chat_member", chat_id, user_id))
        if user_id == BOT_ID:
            if isinstance(self.permissions, Exception):
                raise self.permissions
            return self.permissions

        statuses = self._members.get((chat_id, user_id), ["left"])
        value = statuses.pop(0) if len(statuses) > 1 else statuses[0]
        if isinstance(value, Exception):
            raise value
        return SimpleNamespace(status=value, user=SimpleNamespace(id=user_id))

    async def send_message(self, chat_id, text, **kwargs):
        self.calls.append(("send_message", chat_id, text))
        if self.fail_send:
            raise telegram_error("Bad Request: chat not found")

        msg = SimpleNamespace(message_id=next(self._message_ids), chat=SimpleNamespace(id=chat_id), text=text)
        self.sent.append(msg)
        return msg

    async def delete_message(self, chat_id, message_id):
        self.calls.append(("delete_message", chat_id, message_id))
        if (chat_id, message_id) in self.deleted:
            raise telegram_error()

        self.deleted.append((chat_id, message_id))
        return True

    async def export_chat_invite_link(self, chat_id):
        self.calls.append(("export_chat_invite_link", chat_id))
        if self.fail_invite:
            raise telegram_error("Bad Request: not enough rights to manage chat invite link")
        return self.invite_links.get(chat_id)

    async def create_chat_invite_link(self, chat_id, member_limit=None):
        self.calls.append(("create_chat_invite_link", chat_id, member_limit))
        return SimpleNamespace(invite_link=f"https://t.me/+single{chat_id}")

    async def ban_chat_member(self, chat_id, user_id):
        self.calls.append(("ban_chat_member", chat_id, user_id))
        self.banned.append((chat_id, user_id))
        return True


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


@pytest.fixture
def bot():
    return FakeBot()


@pytest.fixture
def spaces():
    return Spaces(entry=ENTRY, companion=COMPANION, main=MAIN, operator=OPERATOR)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notices():
    return []


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def audit_path(tmp_path):
    return tmp_path / "verifications.log"


@pytest.fixture
def ctx(bot, spaces, clock, notices, sleeps, audit_path):
    async def notify(content):
        notices.append(content)

    async def sleep(seconds):
        sleeps.append(seconds)

    return Context(
        bot=bot,
        spaces=spaces,
        oracle=MembershipOracle(bot, spaces),
        limiter=RateLimiter(),
        lifecycle=MessageLifecycle(bot, clock=clock),
        audit=AuditLog(str(audit_path), notify=notify),
        sleep=sleep,
        clock=clock,
    )


@pytest.fixture
def audit_lines(audit_path):
    def read():
        if not audit_path.exists():
            return []
        return audit_path.read_text(encoding="utf-8").splitlines()

    return read
