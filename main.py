#!/usr/bin/python3

import asyncio
import sys

from handlers import *  # noqa
from handlers.gatekeeper import Context, check_bot_permissions
from handlers.gatekeeper.exceptions import ConfigError
from manager import manager

logger = manager.logger


async def main():
    manager.setup()

    try:
        ctx = Context.create(manager.bot, manager.config, notify=manager.notification)
    except ConfigError as e:
        logger.error(f"config error:{e}")
        sys.exit(1)

    # 注入到所有处理器
    manager.dp["ctx"] = ctx

    logger.info("Checking bot permissions...")
    await check_bot_permissions(ctx)

    worker = asyncio.create_task(ctx.lifecycle.run())

    manager.setup_signals()

    try:
        await manager.start()
    except Exception as e:
        logger.exception("Failed to start bot")
        await manager.notification(f"Failed to start bot: {e}")
    finally:
        await manager.stop("shutdown")
        # 不再接收新事件，等待处理中的验证完成
        await ctx.drain()
        await ctx.lifecycle.shutdown()
        await worker
        await manager.close()


if __name__ == "__main__":
    asyncio.run(main())
