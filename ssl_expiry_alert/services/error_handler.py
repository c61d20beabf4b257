"""
错误处理服务
"""
import asyncio
import socket
import ssl
from datetime import datetime, timezone
from typing import Any, Dict
import logging

# OpenSSL X509_V_ERR_CERT_HAS_EXPIRED
CERT_HAS_EXPIRED = 10
CERT_HAS_EXPIRED_MESSAGE = "certificate has expired"


class ProbeErrorHandler:
    """探测错误处理器"""

    def __init__(self):
        """初始化探测错误处理器"""
        self.logger = logging.getLogger(__name__)

    def is_certificate_expired(self, error: BaseException) -> bool:
        """
        判断握手失败是否因为证书已过期

        只认证书校验错误中的 "certificate has expired"，其它握手失败一律不算。

        Args:
            error: 异常对象

        Returns:
            bool: 是否是证书已过期
        """
        if not isinstance(error, ssl.SSLCertVerificationError):
            return False

        verify_code = getattr(error, 'verify_code', None)
        verify_message = getattr(error, 'verify_message', None) or ''

        return (
            verify_code == CERT_HAS_EXPIRED
            or verify_message.lower() == CERT_HAS_EXPIRED_MESSAGE
        )

    def describe(self, error: BaseException) -> str:
        """
        生成简短的失败原因

        Args:
            error: 异常对象

        Returns:
            str: "错误类型: 错误信息"
        """
        message = str(error)
        if isinstance(error, asyncio.TimeoutError) and not message:
            message = "连接超时"
        return f"{type(error).__name__}: {message}"

    def handle_ssl_connection_error(self, hostname: str, error: BaseException) -> Dict[str, Any]:
        """
        处理SSL连接错误并记录日志

        Args:
            hostname: 主机名
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        error_info = {
            'hostname': hostname,
            'error_type': type(error).__name__,
            'error_message': self.describe(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self._get_suggested_action(error)
        }

        self.logger.error(
            f"主机 {hostname} SSL连接错误: {error_info['error_message']}，"
            f"建议: {error_info['suggested_action']}"
        )

        return error_info

    def _get_suggested_action(self, error: BaseException) -> str:
        """
        获取错误的建议处理方案

        Args:
            error: 异常对象

        Returns:
            str: 建议的处理方案
        """
        error_message = str(error).lower()

        if isinstance(error, (asyncio.TimeoutError, socket.timeout)):
            return "检查网络连接，考虑增加超时时间"
        elif isinstance(error, socket.gaierror):
            return "检查域名是否正确，DNS服务器是否可用"
        elif isinstance(error, ConnectionRefusedError):
            return "检查目标服务器是否运行，端口是否正确"
        elif isinstance(error, ssl.SSLCertVerificationError):
            return "证书验证失败，可能是自签名证书、证书链或主机名不匹配问题"
        elif isinstance(error, ssl.SSLError):
            if 'handshake failure' in error_message:
                return "SSL握手失败，检查SSL/TLS版本兼容性"
            return "SSL连接问题，检查服务器SSL配置"
        elif isinstance(error, ValueError):
            return "证书内容无法解析，检查服务器返回的证书"
        elif 'network is unreachable' in error_message:
            return "网络不可达，检查网络连接和路由"
        elif 'no route to host' in error_message:
            return "无法路由到主机，检查防火墙和网络配置"
        else:
            return "检查网络连接和服务器状态"

