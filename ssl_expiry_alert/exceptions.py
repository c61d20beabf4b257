"""
异常定义
"""
from typing import List, Optional


class SSLExpiryAlertError(Exception):
    """所有业务异常的基类"""


class InvalidHostError(SSLExpiryAlertError):
    """主机字符串格式无效（host[:port]）"""

    def __init__(self, raw: str, detail: Optional[str] = None):
        self.raw = raw
        self.detail = detail
        message = f"无效的主机: {raw}"
        if detail:
            message = f"{message}（{detail}）"
        super().__init__(message)


class ProbeFailure(SSLExpiryAlertError):
    """证书探测失败（证书已过期的情况除外）"""

    def __init__(self, hostname: str, reason: str):
        self.hostname = hostname
        self.reason = reason
        super().__init__(f"主机 {hostname} 证书探测失败: {reason}")


class DeliveryError(SSLExpiryAlertError):
    """邮件发送失败"""


class ConfigurationError(SSLExpiryAlertError):
    """配置无效或无法读取"""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        self.errors = list(errors or [])
        if self.errors:
            message = message + ": " + "; ".join(self.errors)
        super().__init__(message)
