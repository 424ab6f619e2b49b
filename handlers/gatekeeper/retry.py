import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from loguru import logger

from .exceptions import TransientError


@dataclass(frozen=True)
class PollResult:
    confirmed: bool
    attempts: int


async def poll_until(
    predicate: Callable[[], Awaitable[bool]],
    attempts: int,
    delay: float,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    log_prefix: str = "",
) -> PollResult:
    """
    固定间隔的有限次轮询

    predicate 依次调用，同一时间只有一个查询；返回 True 立即结束。
    TransientError 视为本次未确认，消耗一次机会，不中断轮询。
    最后一次之后不再等待。
    """
    for attempt in range(1, attempts + 1):
        try:
            if await predicate():
                return PollResult(True, attempt)
        except TransientError as e:
            logger.warning(f"{log_prefix} | attempt {attempt} failed | {e}")

        if attempt < attempts:
            await sleep(delay)

    return PollResult(False, attempts)
