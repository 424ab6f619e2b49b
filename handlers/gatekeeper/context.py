import asyncio
import time
from configparser import ConfigParser
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Optional, Set

from aiogram import Bot
from loguru import logger

from .audit import AuditLog, Notifier, parse_notify_outcomes
from .config import (
    CONFIRM_ATTEMPTS, CONFIRM_DELAY, DEFAULT_NOTIFY_OUTCOMES, NOTICE_TTL, RATE_LIMIT_SECONDS
)
from .exceptions import ConfigError
from .lifecycle import MessageLifecycle
from .models import Spaces
from .oracle import MembershipOracle
from .rate_limiter import RateLimiter


def get_number(gate, key: str, default, cast=float):
    value = gate.get(key, default)
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigError(f"[gate] {key} is not a number:{value}")


@dataclass
class Stats:
    """进程内统计，重启后归零"""

    verifications: int = 0


@dataclass
class Context:
    """
    启动时创建一次，通过 dispatcher 注入到每个处理器
    """

    bot: Bot
    spaces: Spaces
    oracle: MembershipOracle
    limiter: RateLimiter
    lifecycle: MessageLifecycle
    audit: AuditLog
    stats: Stats = field(default_factory=Stats)

    notice_ttl: float = NOTICE_TTL
    confirm_attempts: int = CONFIRM_ATTEMPTS
    confirm_delay: float = CONFIRM_DELAY
    single_use_invite: bool = False

    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep
    clock: Callable[[], float] = time.monotonic

    # 处理中的事件
    inflight: Set[asyncio.Task] = field(default_factory=set)

    @contextmanager
    def track(self):
        """把当前任务登记为处理中，退出时移除"""
        task = asyncio.current_task()
        self.inflight.add(task)
        try:
            yield task
        finally:
            self.inflight.discard(task)

    async def drain(self) -> int:
        """
        等待处理中的事件完成，返回等待的数量
        """
        current = asyncio.current_task()
        tasks = [i for i in self.inflight if i is not current and not i.done()]
        if not tasks:
            return 0

        logger.info(f"waiting for {len(tasks)} in-flight events")
        await asyncio.gather(*tasks, return_exceptions=True)
        return len(tasks)

    @classmethod
    def create(cls, bot: Bot, config: ConfigParser, notify: Optional[Notifier] = None) -> "Context":
        """
        从配置创建上下文，群组 ID 缺失或数值无效时抛出 ConfigError
        """
        spaces = Spaces.from_config(config)
        gate = config["gate"] if config.has_section("gate") else {}

        audit = AuditLog(
            gate.get("audit_log", "verifications.log"),
            notify=notify,
            notify_outcomes=parse_notify_outcomes(gate.get("notify_outcomes", DEFAULT_NOTIFY_OUTCOMES)),
        )

        return cls(
            bot=bot,
            spaces=spaces,
            oracle=MembershipOracle(bot, spaces),
            limiter=RateLimiter(get_number(gate, "rate_limit", RATE_LIMIT_SECONDS)),
            lifecycle=MessageLifecycle(bot),
            audit=audit,
            notice_ttl=get_number(gate, "notice_ttl", NOTICE_TTL),
            confirm_attempts=get_number(gate, "confirm_attempts", CONFIRM_ATTEMPTS, int),
            confirm_delay=get_number(gate, "confirm_delay", CONFIRM_DELAY),
            single_use_invite=str(gate.get("single_use_invite", "false")).lower() in ("1", "yes", "true", "on"),
        )
