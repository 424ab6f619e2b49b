import math
from dataclasses import dataclass
from typing import Dict

from .config import RATE_LIMIT_SECONDS


@dataclass(frozen=True)
class Decision:
    allowed: bool
    seconds_remaining: int = 0


class RateLimiter:
    """
    按用户的冷却时间限制

    检查与更新之间没有 await，在单线程事件循环里是原子的。
    如果以后在中间加入 await，这里需要改成加锁。
    记录不会过期，重启后清空。
    """

    def __init__(self, cooldown: float = RATE_LIMIT_SECONDS):
        self.cooldown = cooldown
        self._last: Dict[int, float] = {}

    def try_acquire(self, user_id: int, now: float) -> Decision:
        last = self._last.get(user_id)
        if last is not None:
            elapsed = now - last
            if elapsed < self.cooldown:
                return Decision(False, math.ceil(self.cooldown - elapsed))

        # 时间戳只前进
        self._last[user_id] = now if last is None else max(last, now)
        return Decision(True)

    def __len__(self):
        return len(self._last)
