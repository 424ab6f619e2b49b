"""
入口群验证模块配置和常量
Gatekeeper module configuration and constants
"""

from enum import Enum
from typing import List

# 支持的群组类型
SUPPORT_GROUP_TYPES: List[str] = ["supergroup", "group"]

# 时间配置 (秒)
NOTICE_TTL = 60  # 提示消息自动删除时间
RATE_LIMIT_SECONDS = 60  # /verify 冷却时间
CONFIRM_ATTEMPTS = 3  # 确认加入主群的最大次数
CONFIRM_DELAY = 5  # 每次确认之间的间隔

COMMAND_PREFIX = "/"

# 默认通知管理员的审计结果
DEFAULT_NOTIFY_OUTCOMES = "success,error"


class SpaceRole(str, Enum):
    """群组角色"""

    ENTRY = "entry"  # 入口群
    COMPANION = "companion"  # 姊妹群
    MAIN = "main"  # 主群


class Outcome(str, Enum):
    """审计结果"""

    SUCCESS = "success"
    FAILED_PRECONDITION = "failed-precondition"
    WARNING = "warning"
    ERROR = "error"
    MODERATED = "moderated"

    @property
    def label(self) -> str:
        return OUTCOME_LABELS[self]


OUTCOME_LABELS = {
    Outcome.SUCCESS: "Success",
    Outcome.FAILED_PRECONDITION: "Failed",
    Outcome.WARNING: "Warning",
    Outcome.ERROR: "Error",
    Outcome.MODERATED: "Non-Admin Message",
}


class VerificationState(str, Enum):
    """验证流程状态"""

    IDLE = "idle"
    CHALLENGED = "challenged"
    RATE_LIMITED = "rate_limited"
    CHECKING_COMPANION = "checking_companion"
    GRANTED_PENDING_CONFIRMATION = "granted_pending_confirmation"
    CONFIRMED_AND_EVICTED = "confirmed_and_evicted"
    REJECTED = "rejected"
    ERROR_REPORTED = "error_reported"


# 用户提示文本
WELCOME_TEXT = (
    "Welcome buddy! To join the educational group, please join the sister group first:\n"
    "1. Group A: %(link)s\n"
    "Then type /verify here.\n"
    "*This message will be deleted in 1 minute.*"
)
INVITE_ERROR_TEXT = "Error generating invite link. Please contact an admin."
WRONG_CHAT_TEXT = "Please use /%(command)s in the entry group."
RATE_LIMITED_TEXT = "Please wait %(seconds)d seconds before trying /verify again."
JOIN_FIRST_TEXT = "Please join Group A first, then try /verify again."
SUCCESS_TEXT = "Success! Join here: %(link)s\n*This message will be deleted in 1 minute.*"
APOLOGY_TEXT = "Something went wrong. Please try again or contact an admin."
STATS_TEXT = "Total successful verifications: %(count)d"
STATS_DENIED_TEXT = "Only admins can use /stats."
