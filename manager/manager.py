import asyncio
import os.path
import signal
import sys
from configparser import ConfigParser
from functools import wraps
from typing import Optional, Set

import loguru
from aiogram import Bot, Dispatcher
from aiohttp import web

from .settings import SETTINGS_TEMPLATE
from .webhook import create_app

logger = loguru.logger

CONFIG_ENV = "GOALKEEPR_CONFIG"


class Manager:
    """管理模块"""

    # aiogram instance
    bot: Bot
    dp: Dispatcher = Dispatcher()  # static dispatcher

    # global config
    config = ConfigParser()

    # routes
    handlers = []

    # running status
    is_running = False

    logger = logger

    # webhook server
    runner: Optional[web.AppRunner] = None
    _stopped: Optional[asyncio.Event] = None

    # 信号触发的 stop 任务，保持引用直到完成
    _stop_tasks: Set[asyncio.Task] = set()

    def setup(self):
        self.load_config()

        self.setup_logger()

        token = self.config["telegram"]["token"]
        if not token:
            logger.error("telegram token is missing")
            sys.exit(1)

        self.bot = Bot(token)
        logger.info("bot is setup")

        self.setup_handlers()

    def load_config(self):
        """加载 main.ini，默认会配置相关代码"""
        config = self.config

        # 设置默认模板
        for key, section in SETTINGS_TEMPLATE.items():
            config.setdefault(key, section)

        # 从文件读取
        path = os.environ.get(CONFIG_ENV, "main.ini")
        if os.path.isfile(path):
            try:
                with open(path, "r", encoding="utf-8") as f:
                    config.read_file(f)

                logger.info(f"settings is loaded from {path}")
            except IOError:
                pass

    def setup_logger(self):
        """设置logger"""
        logger = self.logger

        if self.config["default"].getboolean("debug", False):
            logger.remove()
            logger.add(sys.stderr, level=10)
            logger.debug("logger is setup with debug level")
            return

        logger.remove()
        logger.add(sys.stderr, level=20)
        logger.info("logger is setup")

    def setup_handlers(self, dp: Optional[Dispatcher] = None):
        """
        设置事件处理，默认注册到 self.dp
        """
        if dp is None:
            dp = self.dp

        for func, type_name, args, kwargs in self.handlers:
            observer = dp.observers.get(type_name, None)
            if not observer or not hasattr(observer, "register"):
                logger.warning(f"dispatcher:unknown type {type_name}")
                continue

            method = observer.register
            method(func, *args, **kwargs)
            logger.info(
                f"dispatcher {func.__name__}:{observer.event_name}.{method.__name__}({args}, {kwargs})"
            )

    def register(self, type_name, *args, **kwargs):
        """
        延迟注册到 Dispatcher
        """

        def wrapper(func):
            self.handlers.append((func, type_name, args, kwargs))
            logger.debug(f"dispatcher {func.__name__}:{type_name}({args}, {kwargs})")

            @wraps(func)
            async def _wrapper(*args, **kwargs):
                return await func(*args, **kwargs)

            return _wrapper

        return wrapper

    @property
    def use_webhook(self) -> bool:
        return bool(self.config["webhook"].get("url", ""))

    async def start(self):
        """
        启动后一直阻塞到 stop() 被调用
        """
        self.is_running = True
        self._stopped = asyncio.Event()

        await self.notification("bot is started")

        if not self.use_webhook:
            await self.dp.start_polling(self.bot, handle_signals=False)
            return

        await self.start_webhook()
        await self._stopped.wait()

    async def start_webhook(self):
        webhook = self.config["webhook"]
        path = webhook.get("path", "/api")
        secret = webhook.get("secret", "") or None
        url = webhook["url"].rstrip("/") + path

        await self.bot.set_webhook(url, secret_token=secret)
        logger.info(f"webhook is set to {url}")

        app = create_app(self.dp, self.bot, path, secret)
        self.runner = web.AppRunner(app)
        await self.runner.setup()

        site = web.TCPSite(self.runner, webhook.get("host", "0.0.0.0"), webhook.getint("port", 8080))
        await site.start()
        logger.info(f"webhook server is listening on {site.name}")

    async def stop(self, reason: str = ""):
        if not self.is_running:
            return

        self.is_running = False
        logger.info(f"bot is stopping {reason}")

        if self.use_webhook:
            # 停止接收新的请求，等待处理中的请求完成
            if self.runner is not None:
                await self.runner.cleanup()
                self.runner = None
            if self._stopped is not None:
                self._stopped.set()
        else:
            try:
                await self.dp.stop_polling()
            except RuntimeError:
                logger.warning("polling is not started")

    def handle_signal(self, sig: signal.Signals) -> asyncio.Task:
        task = asyncio.create_task(self.stop(sig.name))
        self._stop_tasks.add(task)
        task.add_done_callback(self._stop_tasks.discard)
        return task

    def setup_signals(self):
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, self.handle_signal, sig)

    async def close(self):
        await self.bot.session.close()
        logger.info("bot session is closed")

    async def send(self, chat: int, msg: str, **kwargs):
        """
        发送消息
        chat: chat with msg
        msg: msg will be sent
        """
        try:
            resp = await self.bot.send_message(chat, msg, **kwargs)
            logger.info(f"chat {chat} message {msg} sent")
        except Exception:
            logger.exception(f"chat {chat} message {msg} send error")
            return None

        return resp

    async def notification(self, content: str):
        admin = self.config["telegram"].get("admin", "")
        if admin:
            await self.send(int(admin), content)
