"""
审计日志与管理员通知
Audit / notify sink

每条记录追加一行到日志文件：
    <ISO timestamp> - <OutcomeLabel>: <detail>
文件只追加，不截断，不轮转。写入失败直接抛出。
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Awaitable, Callable, FrozenSet, Iterable, Optional

from loguru import logger

from .config import DEFAULT_NOTIFY_OUTCOMES, Outcome
from .exceptions import ConfigError
from .models import Member

Notifier = Callable[[str], Awaitable]


@dataclass(frozen=True)
class AuditRecord:
    timestamp: datetime
    outcome: Outcome
    user_id: Optional[int]
    user_handle: Optional[str]
    detail: str

    def line(self) -> str:
        ts = self.timestamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")
        return f"{ts} - {self.outcome.label}: {self.detail}\n"


def parse_notify_outcomes(raw: str = DEFAULT_NOTIFY_OUTCOMES) -> FrozenSet[Outcome]:
    """success,error => {Outcome.SUCCESS, Outcome.ERROR}"""
    outcomes = set()
    for item in raw.split(","):
        item = item.strip()
        if not item:
            continue

        try:
            outcomes.add(Outcome(item))
        except ValueError:
            raise ConfigError(f"[gate] notify_outcomes has unknown outcome:{item}")

    return frozenset(outcomes)


class AuditLog:
    def __init__(self, path: str, notify: Optional[Notifier] = None,
                 notify_outcomes: Iterable[Outcome] = (Outcome.SUCCESS, Outcome.ERROR)):
        self.path = path
        self.notify = notify
        self.notify_outcomes = frozenset(notify_outcomes)

    async def record(self, outcome: Outcome, user: Optional[Member], detail: str,
                     notice: Optional[str] = None) -> AuditRecord:
        """
        outcome: audit outcome
        user: the member the record is about
        detail: free text written to the log
        notice: operator message, defaults to detail
        """
        record = AuditRecord(
            timestamp=datetime.now(timezone.utc),
            outcome=outcome,
            user_id=user.id if user else None,
            user_handle=user.handle if user else None,
            detail=detail,
        )
        line = record.line()

        with open(self.path, "a", encoding="utf-8") as f:
            f.write(line)
        logger.info(line.rstrip())

        if outcome in self.notify_outcomes:
            await self.report(notice or detail)

        return record

    async def report(self, content: str):
        """只通知管理员，不写日志文件"""
        if self.notify is None:
            return

        try:
            await self.notify(content)
        except Exception:
            logger.exception(f"operator notification failed:{content}")
