import re

import pytest

from .audit import AuditLog, parse_notify_outcomes
from .config import Outcome
from .exceptions import ConfigError
from .models import Member

pytestmark = pytest.mark.asyncio

LINE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z - (?P<label>[^:]+): (?P<detail>.*)$")


async def test_line_format(ctx, audit_lines):
    user = Member(id=555, username="alice")
    record = await ctx.audit.record(Outcome.FAILED_PRECONDITION, user, "User @alice (ID: 555) not in Group A")

    assert record.user_id == 555
    assert record.user_handle == "@alice"

    lines = audit_lines()
    assert len(lines) == 1
    matched = LINE.match(lines[0])
    assert matched
    assert matched["label"] == "Failed"
    assert matched["detail"] == "User @alice (ID: 555) not in Group A"


async def test_log_is_append_only(ctx, audit_lines):
    user = Member(id=1)
    await ctx.audit.record(Outcome.MODERATED, user, "first")
    await ctx.audit.record(Outcome.WARNING, user, "second")

    lines = audit_lines()
    assert [LINE.match(i)["detail"] for i in lines] == ["first", "second"]
    assert [LINE.match(i)["label"] for i in lines] == ["Non-Admin Message", "Warning"]


async def test_only_configured_outcomes_notify(ctx, notices):
    user = Member(id=1)
    await ctx.audit.record(Outcome.SUCCESS, user, "ok", notice="moved")
    await ctx.audit.record(Outcome.ERROR, user, "broken")
    await ctx.audit.record(Outcome.WARNING, user, "not evicted")
    await ctx.audit.record(Outcome.MODERATED, user, "deleted")
    await ctx.audit.record(Outcome.FAILED_PRECONDITION, user, "join first")

    assert notices == ["moved", "broken"]


async def test_notify_failure_is_swallowed(audit_path, audit_lines):
    async def notify(content):
        raise RuntimeError("operator chat is gone")

    audit = AuditLog(str(audit_path), notify=notify)
    await audit.record(Outcome.ERROR, Member(id=1), "broken")
    assert len(audit_lines()) == 1


async def test_write_failure_propagates(tmp_path):
    audit = AuditLog(str(tmp_path))  # 目录无法追加写入
    with pytest.raises(OSError):
        await audit.record(Outcome.SUCCESS, Member(id=1), "ok")


async def test_parse_notify_outcomes():
    assert parse_notify_outcomes("success, error,") == {Outcome.SUCCESS, Outcome.ERROR}
    assert parse_notify_outcomes("warning") == {Outcome.WARNING}
    assert parse_notify_outcomes("") == frozenset()


async def test_parse_unknown_outcome():
    with pytest.raises(ConfigError):
        parse_notify_outcomes("success,permission")
