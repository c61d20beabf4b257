"""
错误处理服务测试
"""
import asyncio
import socket
import ssl
from unittest.mock import patch

from ssl_expiry_alert.services.error_handler import ProbeErrorHandler, CERT_HAS_EXPIRED


def make_verification_error(verify_code, verify_message):
    error = ssl.SSLCertVerificationError(1, f"certificate verify failed: {verify_message}")
    error.verify_code = verify_code
    error.verify_message = verify_message
    return error


class TestProbeErrorHandler:
    """探测错误处理器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.handler = ProbeErrorHandler()

    def test_is_certificate_expired_by_code(self):
        """测试按校验码识别证书过期"""
        error = make_verification_error(CERT_HAS_EXPIRED, "")

        assert self.handler.is_certificate_expired(error) is True

    def test_is_certificate_expired_by_message(self):
        """测试按校验信息识别证书过期"""
        error = make_verification_error(None, "certificate has expired")

        assert self.handler.is_certificate_expired(error) is True

    def test_is_certificate_expired_false(self):
        """测试其它错误不算证书过期"""
        errors = [
            make_verification_error(18, "self-signed certificate"),
            make_verification_error(62, "hostname mismatch"),
            ssl.SSLError(1, "certificate has expired"),
            ConnectionRefusedError("Connection refused"),
            ValueError("certificate has expired"),
        ]

        for error in errors:
            assert self.handler.is_certificate_expired(error) is False

    def test_describe_timeout(self):
        """测试超时错误描述"""
        assert self.handler.describe(asyncio.TimeoutError()).endswith(": 连接超时")

    def test_describe(self):
        """测试普通错误描述"""
        assert self.handler.describe(ConnectionRefusedError("refused")) == "ConnectionRefusedError: refused"

    def test_handle_ssl_connection_error(self):
        """测试处理SSL连接错误"""
        error = socket.gaierror("Name or service not known")

        with patch.object(self.handler, 'logger') as mock_logger:
            error_info = self.handler.handle_ssl_connection_error("example.com", error)

        assert error_info['hostname'] == "example.com"
        assert error_info['error_type'] == "gaierror"
        assert "Name or service not known" in error_info['error_message']
        assert 'timestamp' in error_info
        assert "DNS" in error_info['suggested_action']
        mock_logger.error.assert_called_once()

    def test_get_suggested_action(self):
        """测试获取建议处理方案"""
        test_cases = [
            (asyncio.TimeoutError(), "超时"),
            (socket.gaierror("DNS error"), "DNS"),
            (ConnectionRefusedError("Connection refused"), "端口"),
            (make_verification_error(18, "self-signed certificate"), "自签名"),
            (ssl.SSLError("handshake failure"), "握手"),
            (ssl.SSLError("other ssl error"), "SSL配置"),
            (ValueError("bad date"), "证书内容"),
            (OSError("Network is unreachable"), "网络不可达"),
            (OSError("No route to host"), "路由"),
            (OSError("Unknown error"), "检查网络连接"),
        ]

        for error, expected_keyword in test_cases:
            action = self.handler._get_suggested_action(error)
            assert expected_keyword in action, f"错误 {error} 的建议中应包含 '{expected_keyword}'"
