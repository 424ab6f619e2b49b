"""
提示消息的延迟删除
Message lifecycle manager

按触发时间排序的堆，由 run() 循环定期取出到期任务执行。
每个任务只会被取出一次，执行失败只记录日志，不重试。
"""

import asyncio
import heapq
import itertools
import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, List, Optional

from aiogram import Bot
from aiogram.exceptions import TelegramBadRequest
from loguru import logger

WORKER_INTERVAL = 0.25


@dataclass(order=True)
class PendingTask:
    fire_at: float
    seq: int
    task: Callable[[], Awaitable] = field(compare=False)
    description: str = field(default="", compare=False)


class MessageLifecycle:
    def __init__(self, bot: Bot, clock: Callable[[], float] = time.monotonic,
                 interval: float = WORKER_INTERVAL):
        self.bot = bot
        self.clock = clock
        self.interval = interval
        self.is_running = False

        self._queue: List[PendingTask] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return len(self._queue)

    def schedule(self, task: Callable[[], Awaitable], delay: float, description: str = "") -> PendingTask:
        item = PendingTask(self.clock() + delay, next(self._seq), task, description)
        heapq.heappush(self._queue, item)
        logger.debug(f"{description or 'task'} scheduled after {delay}s")
        return item

    def schedule_delete(self, chat_id: int, message_id: int, delay: float) -> PendingTask:
        """
        chat_id: chat with msg
        message_id: msg will be deleted
        delay: seconds from now
        """
        return self.schedule(
            lambda: self.delete_now(chat_id, message_id),
            delay,
            f"chat {chat_id} message {message_id} delete",
        )

    async def delete_now(self, chat_id: int, message_id: int) -> bool:
        try:
            await self.bot.delete_message(chat_id, message_id)
            logger.info(f"chat {chat_id} message {message_id} deleted")
        except TelegramBadRequest as e:
            logger.warning(f"chat {chat_id} message {message_id} not found:{e}")
            return False
        except Exception:
            logger.exception(f"chat {chat_id} message {message_id} delete failed")
            return False

        return True

    async def fire_due(self, now: Optional[float] = None) -> int:
        """执行所有到期任务，返回执行数量"""
        if now is None:
            now = self.clock()

        due = []
        while self._queue and self._queue[0].fire_at <= now:
            due.append(heapq.heappop(self._queue))

        for item in due:
            await self._fire(item)

        return len(due)

    async def _fire(self, item: PendingTask):
        try:
            await item.task()
        except Exception:
            logger.exception(f"{item.description or 'task'} failed")

    async def run(self):
        self.is_running = True
        logger.info("message lifecycle worker is started")

        while self.is_running:
            await asyncio.sleep(self.interval)
            await self.fire_due()

        logger.info("message lifecycle worker is stopped")

    async def shutdown(self, flush: bool = True) -> int:
        """
        停止循环；flush 为真时立即执行剩余任务，否则直接放弃
        """
        self.is_running = False

        items, self._queue = self._queue, []
        if not flush:
            logger.info(f"{len(items)} pending tasks abandoned")
            return 0

        items.sort()
        for item in items:
            await self._fire(item)

        logger.info(f"{len(items)} pending tasks flushed")
        return len(items)
