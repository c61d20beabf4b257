"""
SSL证书过期探测服务
"""
import asyncio
import ssl
from datetime import datetime, timezone
from typing import Optional
import logging

from ..interfaces import CertificateProbeInterface
from ..models import AlreadyExpired, Expiry, HostSpec, ProbeFailed, ProbeOutcome
from .error_handler import ProbeErrorHandler

# 证书时间格式：'Dec 31 23:59:59 2024 GMT'
NOT_AFTER_FORMAT = '%b %d %H:%M:%S %Y %Z'


class CertificateExpiryProbe(CertificateProbeInterface):
    """通过TLS握手读取证书过期时间"""

    def __init__(self, timeout: Optional[float] = 10.0, ssl_context: Optional[ssl.SSLContext] = None):
        """
        初始化证书探测器

        Args:
            timeout: 连接及握手超时时间（秒），None 表示不限制
            ssl_context: 自定义SSL上下文，默认使用系统信任的校验上下文
        """
        self.timeout = timeout
        self.ssl_context = ssl_context
        self.logger = logging.getLogger(__name__)
        self.error_handler = ProbeErrorHandler()

    async def probe(self, spec: HostSpec) -> ProbeOutcome:
        """
        探测单个主机的证书

        Args:
            spec: 主机及端口

        Returns:
            ProbeOutcome: Expiry、AlreadyExpired 或 ProbeFailed
        """
        try:
            expiry_date = await self._get_expiry_date(spec)
        except (OSError, asyncio.TimeoutError, ValueError) as e:
            if self.error_handler.is_certificate_expired(e):
                self.logger.warning(f"主机 {spec} 的证书已过期（握手被拒绝）")
                return AlreadyExpired()

            error_info = self.error_handler.handle_ssl_connection_error(spec.hostname, e)
            return ProbeFailed(reason=error_info['error_message'], error=e)

        self.logger.debug(f"主机 {spec} 证书过期时间: {expiry_date.isoformat()}")
        return Expiry(expiry_date)

    async def _get_expiry_date(self, spec: HostSpec) -> datetime:
        """
        建立TLS连接并读取证书过期时间

        Args:
            spec: 主机及端口

        Returns:
            datetime: 过期时间（UTC）

        Raises:
            OSError: 连接或握手失败（ssl.SSLError 是其子类）
            asyncio.TimeoutError: 超时
            ValueError: 证书缺少或无法解析过期时间
        """
        context = self.ssl_context or ssl.create_default_context()

        # 必须携带SNI，基于域名的虚拟主机才会返回正确的证书
        reader, writer = await asyncio.wait_for(
            asyncio.open_connection(
                spec.hostname, spec.port, ssl=context, server_hostname=spec.hostname
            ),
            timeout=self.timeout
        )

        try:
            ssl_object = writer.get_extra_info('ssl_object')
            cert = ssl_object.getpeercert() if ssl_object else None
        finally:
            await self._close(writer, spec)

        if not cert:
            raise ValueError(f"无法获取主机 {spec} 的SSL证书")

        return self._parse_expiry_date(cert)

    async def _close(self, writer: asyncio.StreamWriter, spec: HostSpec):
        writer.close()
        try:
            await writer.wait_closed()
        except (OSError, asyncio.TimeoutError) as e:
            # 证书已读到，关闭阶段的错误不影响结果
            self.logger.debug(f"关闭主机 {spec} 的连接时发生错误: {e}")

    def _parse_expiry_date(self, cert: dict) -> datetime:
        """
        解析证书过期时间

        Args:
            cert: getpeercert() 返回的证书信息

        Returns:
            datetime: 过期时间
        """
        not_after = cert.get('notAfter')
        if not not_after:
            raise ValueError("证书中未找到过期时间信息")

        expiry_date = datetime.strptime(not_after, NOT_AFTER_FORMAT)
        return expiry_date.replace(tzinfo=timezone.utc)
