SETTINGS_TEMPLATE = {
    "default": {"debug": False},
    "telegram": {
        "token": "",  # telegram robot token
        "admin": "",  # operator chat id
    },
    "groups": {
        "entry": "",  # entry group id
        "companion": "",  # companion group id, membership is the proof
        "main": "",  # main group id
    },
    "gate": {
        "audit_log": "verifications.log",
        "notice_ttl": 60,  # seconds before notices are deleted
        "rate_limit": 60,  # /verify cooldown seconds
        "confirm_attempts": 3,
        "confirm_delay": 5,
        "notify_outcomes": "success,error",  # comma separated outcomes sent to operator
        "single_use_invite": False,  # create member_limit=1 links for the main group
    },
    "webhook": {
        "url": "",  # public base url, empty => long polling
        "path": "/api",
        "host": "0.0.0.0",
        "port": 8080,
        "secret": "",  # X-Telegram-Bot-Api-Secret-Token
    },
}
