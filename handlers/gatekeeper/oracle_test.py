import pytest

from conftest import COMPANION, MAIN, telegram_error
from .config import SpaceRole
from .exceptions import TransientError
from .models import MemberStatus

pytestmark = pytest.mark.asyncio


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("creator", MemberStatus.OWNER),
        ("administrator", MemberStatus.ADMIN),
        ("member", MemberStatus.MEMBER),
        ("restricted", MemberStatus.NONE),
        ("left", MemberStatus.NONE),
        ("kicked", MemberStatus.NONE),
    ],
)
async def test_status_mapping(ctx, bot, raw, expected):
    bot.set_member(COMPANION, 1, raw)
    assert await ctx.oracle.query_membership(SpaceRole.COMPANION, 1) == expected


async def test_platform_failure_is_transient(ctx, bot):
    bot.set_member(MAIN, 1, telegram_error("Bad Request: user not found"))

    with pytest.raises(TransientError) as e:
        await ctx.oracle.query_membership(SpaceRole.MAIN, 1)
    assert e.value.chat_id == MAIN
    assert e.value.user_id == 1


async def test_every_call_is_live(ctx, bot):
    bot.set_member(MAIN, 1, "left", "member")

    assert await ctx.oracle.query_membership(SpaceRole.MAIN, 1) == MemberStatus.NONE
    assert await ctx.oracle.query_membership(SpaceRole.MAIN, 1) == MemberStatus.MEMBER
    assert bot.polls(MAIN, 1) == 2


async def test_is_admin_false_on_failure(ctx, bot):
    bot.set_member(COMPANION, 1, telegram_error())
    assert not await ctx.oracle.is_admin(SpaceRole.COMPANION, 1)
