"""
webhook 入口

GET 返回运行状态，其他非 POST 请求返回监听状态，POST 按 update 解析后交给 dispatcher。
"""

from typing import Optional

import orjson
from aiogram import Bot, Dispatcher, types
from aiohttp import web
from loguru import logger

SECRET_HEADER = "X-Telegram-Bot-Api-Secret-Token"


def json_response(data: dict, status: int = 200) -> web.Response:
    return web.json_response(data, status=status, dumps=lambda o: orjson.dumps(o).decode())


def create_app(dp: Dispatcher, bot: Bot, path: str = "/api", secret: Optional[str] = None,
               **kwargs) -> web.Application:
    """
    dp: dispatcher the updates are fed to
    bot: bot instance bound to the updates
    path: endpoint path
    secret: expected secret token header, empty to skip the check
    kwargs: extra data passed to handlers
    """

    async def handle(request: web.Request) -> web.Response:
        if request.method == "GET":
            return json_response({"status": "Bot is running"})

        if request.method != "POST":
            return json_response({"status": "Listening for bot events"})

        if secret and request.headers.get(SECRET_HEADER) != secret:
            logger.warning(f"webhook request from {request.remote} rejected: bad secret")
            return json_response({"error": "Forbidden"}, status=403)

        try:
            payload = orjson.loads(await request.read())
            update = types.Update.model_validate(payload, context={"bot": bot})
            await dp.feed_update(bot, update, **kwargs)
        except Exception:
            logger.exception("webhook update handling failed")
            return json_response({"error": "Internal server error"}, status=500)

        logger.debug(f"webhook update {update.update_id} handled")
        return json_response({"ok": True})

    app = web.Application()
    app.router.add_route("*", path, handle)
    return app
