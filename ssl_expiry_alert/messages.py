"""
通知文案（按语言区分）
"""
from typing import Dict

DEFAULT_LOCALE = "zh_CN"

MESSAGES: Dict[str, Dict[str, str]] = {
    "zh": {
        "expired": "已过期！",
        "expires": "{relative}过期",
        "failed": "检查失败: {reason}",
        "subject": "[{count}🚨] SSL 证书到期检测",
    },
    "en": {
        "expired": "already expired!",
        "expires": "expires {relative}",
        "failed": "check failed: {reason}",
        "subject": "[{count}🚨] SSL certificate expiry check",
    },
}


def get_messages(locale: str) -> Dict[str, str]:
    """
    获取某个locale对应的文案，未知语言回退到中文

    Args:
        locale: 如 "zh_CN"、"en_US"、"en"

    Returns:
        Dict[str, str]: 文案模板
    """
    language = (locale or DEFAULT_LOCALE).replace("-", "_").split("_")[0].lower()
    return MESSAGES.get(language, MESSAGES["zh"])
