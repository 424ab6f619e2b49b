"""
入口群验证模块
Gatekeeper module

新成员先加入姊妹群，再通过 /verify 获取主群邀请链接，确认进入主群后移出入口群。
- 新成员欢迎和姊妹群邀请
- /verify 冷却限制
- 主群加入确认（有限次轮询）
- 提示消息定时删除
- 入口群非管理员发言删除
- 审计日志和管理员通知
"""

from .context import Context
from .gatekeeper import entry_text, new_members, verify_command
from .permissions import check_bot_permissions

__all__ = [
    "Context",
    "check_bot_permissions",
    "entry_text",
    "new_members",
    "verify_command",
]
