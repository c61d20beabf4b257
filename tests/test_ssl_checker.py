"""
SSL证书探测器测试
"""
import asyncio
import ssl
from datetime import datetime, timezone
from unittest.mock import patch, MagicMock, AsyncMock, ANY

import pytest

from ssl_expiry_alert.models import AlreadyExpired, EPOCH, Expiry, HostSpec, ProbeFailed
from ssl_expiry_alert.services.ssl_checker import CertificateExpiryProbe

OPEN_CONNECTION = 'ssl_expiry_alert.services.ssl_checker.asyncio.open_connection'


def make_writer(cert):
    """构造带证书的StreamWriter"""
    ssl_object = MagicMock()
    ssl_object.getpeercert.return_value = cert

    writer = MagicMock()
    writer.get_extra_info.return_value = ssl_object
    writer.wait_closed = AsyncMock()
    return writer


def make_verification_error(verify_code, verify_message):
    error = ssl.SSLCertVerificationError(
        1, f"[SSL: CERTIFICATE_VERIFY_FAILED] certificate verify failed: {verify_message}"
    )
    error.verify_code = verify_code
    error.verify_message = verify_message
    return error


class TestCertificateExpiryProbe:
    """证书探测器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.probe = CertificateExpiryProbe(timeout=5)
        self.spec = HostSpec("example.com", 443)

    def run_probe(self, spec=None):
        return asyncio.run(self.probe.probe(spec or self.spec))

    def test_parse_expiry_date(self):
        """测试证书过期时间解析"""
        expiry_date = self.probe._parse_expiry_date({'notAfter': 'Dec 31 23:59:59 2024 GMT'})

        assert expiry_date == datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc)

    def test_parse_expiry_date_single_digit_day(self):
        """测试单数字日期（两个空格）的解析"""
        expiry_date = self.probe._parse_expiry_date({'notAfter': 'Feb  6 12:00:00 2026 GMT'})

        assert expiry_date == datetime(2026, 2, 6, 12, 0, 0, tzinfo=timezone.utc)

    def test_parse_expiry_date_missing(self):
        """测试缺少过期时间的证书"""
        with pytest.raises(ValueError, match="证书中未找到过期时间信息"):
            self.probe._parse_expiry_date({})

    def test_probe_success(self):
        """测试成功读取证书过期时间"""
        writer = make_writer({'notAfter': 'Dec 31 23:59:59 2030 GMT'})

        with patch(OPEN_CONNECTION, new_callable=AsyncMock) as mock_open:
            mock_open.return_value = (MagicMock(), writer)
            outcome = self.run_probe(HostSpec("example.com", 8443))

        assert outcome == Expiry(datetime(2030, 12, 31, 23, 59, 59, tzinfo=timezone.utc))
        mock_open.assert_awaited_once_with(
            "example.com", 8443, ssl=ANY, server_hostname="example.com"
        )
        writer.close.assert_called_once()
        writer.wait_closed.assert_awaited_once()

    def test_probe_uses_custom_context(self):
        """测试使用自定义SSL上下文"""
        context = ssl.create_default_context()
        probe = CertificateExpiryProbe(ssl_context=context)
        writer = make_writer({'notAfter': 'Dec 31 23:59:59 2030 GMT'})

        with patch(OPEN_CONNECTION, new_callable=AsyncMock) as mock_open:
            mock_open.return_value = (MagicMock(), writer)
            asyncio.run(probe.probe(self.spec))

        assert mock_open.call_args.kwargs['ssl'] is context

    def test_probe_certificate_expired(self):
        """测试握手因证书已过期失败时返回AlreadyExpired"""
        error = make_verification_error(10, "certificate has expired")

        with patch(OPEN_CONNECTION, new_callable=AsyncMock) as mock_open:
            mock_open.side_effect = error
            outcome = self.run_probe()

        assert outcome == AlreadyExpired()
        assert outcome.instant == EPOCH

    def test_probe_other_verification_error(self):
        """测试其它证书校验错误不被当作已过期"""
        error = make_verification_error(18, "self-signed certificate")

        with patch(OPEN_CONNECTION, new_callable=AsyncMock) as mock_open:
            mock_open.side_effect = error
            outcome = self.run_probe()

        assert isinstance(outcome, ProbeFailed)
        assert outcome.error is error
        assert "SSLCertVerificationError" in outcome.reason

    def test_probe_connection_refused(self):
        """测试连接被拒绝"""
        with patch(OPEN_CONNECTION, new_callable=AsyncMock) as mock_open:
            mock_open.side_effect = ConnectionRefusedError("Connection refused")
            outcome = self.run_probe()

        assert isinstance(outcome, ProbeFailed)
        assert isinstance(outcome.error, ConnectionRefusedError)
        assert "Connection refused" in outcome.reason

    def test_probe_timeout(self):
        """测试连接超时"""
        with patch(OPEN_CONNECTION, new_callable=AsyncMock) as mock_open:
            mock_open.side_effect = asyncio.TimeoutError()
            outcome = self.run_probe()

        assert isinstance(outcome, ProbeFailed)
        assert "连接超时" in outcome.reason

    def test_probe_without_certificate(self):
        """测试握手成功但没有拿到证书"""
        writer = make_writer({})

        with patch(OPEN_CONNECTION, new_callable=AsyncMock) as mock_open:
            mock_open.return_value = (MagicMock(), writer)
            outcome = self.run_probe()

        assert isinstance(outcome, ProbeFailed)
        assert "无法获取主机" in outcome.reason
        writer.close.assert_called_once()

    def test_probe_close_error_is_ignored(self):
        """测试关闭连接时的错误不影响结果"""
        writer = make_writer({'notAfter': 'Dec 31 23:59:59 2030 GMT'})
        writer.wait_closed.side_effect = ConnectionResetError("reset")

        with patch(OPEN_CONNECTION, new_callable=AsyncMock) as mock_open:
            mock_open.return_value = (MagicMock(), writer)
            outcome = self.run_probe()

        assert isinstance(outcome, Expiry)
