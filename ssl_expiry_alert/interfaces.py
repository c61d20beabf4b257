"""
服务接口定义
"""
from abc import ABC, abstractmethod

from .models import ClassifiedEntry, HostSpec, ProbeOutcome


class CertificateProbeInterface(ABC):
    """证书探测器接口"""

    @abstractmethod
    async def probe(self, spec: HostSpec) -> ProbeOutcome:
        """探测单个主机的证书过期时间"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""

    @abstractmethod
    def send(self, subject: str, html_body: str) -> str:
        """发送通知邮件，返回消息ID"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, host_count: int):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_entry(self, entry: ClassifiedEntry):
        """记录单个主机的检查结果"""
        pass

    @abstractmethod
    def log_error(self, hostname: str, error: Exception):
        """记录错误信息"""
        pass
