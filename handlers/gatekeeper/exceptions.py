"""
入口群验证模块异常定义
Gatekeeper module exceptions
"""

from typing import Optional


class GateError(Exception):
    """验证相关错误基类"""

    def __init__(self, message: str, chat_id: Optional[int] = None,
                 user_id: Optional[int] = None):
        super().__init__(message)
        self.chat_id = chat_id
        self.user_id = user_id


class TransientError(GateError):
    """平台查询失败，可重试或视为尚未成立"""
    pass


class PreconditionFailed(GateError):
    """用户未完成前置步骤"""
    pass


class EmptyResult(GateError):
    """平台返回了不可用的邀请链接"""
    pass


class PermissionError(GateError):
    """机器人权限不足"""
    pass


class ConfigError(GateError):
    """启动配置错误"""
    pass


class LogContext:
    """日志上下文"""

    def __init__(self, chat_id: int, user_id: int,
                 username: Optional[str] = None, prefix: str = "[gate]"):
        self.chat_id = chat_id
        self.user_id = user_id
        self.username = username
        self.prefix = prefix
        self._log_prefix = None

    @property
    def log_prefix(self) -> str:
        """获取格式化的日志前缀"""
        if self._log_prefix is None:
            self._log_prefix = f"{self.prefix} chat:{self.chat_id} user:{self.user_id}"
            if self.username:
                self._log_prefix += f"(@{self.username})"
        return self._log_prefix

    def update_prefix(self, new_prefix: str) -> None:
        """更新前缀并重置缓存"""
        self.prefix = new_prefix
        self._log_prefix = None
