"""
邮件通知服务
"""
import os
import smtplib
import ssl
from email.message import EmailMessage
from email.utils import make_msgid
from typing import Optional
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..exceptions import ConfigurationError, DeliveryError
from ..interfaces import NotificationServiceInterface
from .config_loader import EmailConfig


class SMTPEmailNotificationService(NotificationServiceInterface):
    """SMTP邮件通知服务"""

    def __init__(self, email_config: EmailConfig, timeout: float = 30.0):
        """
        初始化SMTP邮件通知服务

        Args:
            email_config: 邮件配置
            timeout: SMTP连接超时时间（秒）
        """
        self.email_config = email_config
        self.sender = email_config.sender
        self.timeout = timeout
        self.logger = logging.getLogger(__name__)

    def send(self, subject: str, html_body: str) -> str:
        """
        发送HTML邮件

        Args:
            subject: 邮件主题
            html_body: HTML正文

        Returns:
            str: Message-ID

        Raises:
            DeliveryError: 连接、认证或投递失败
        """
        message = self.build_message(subject, html_body)

        try:
            with self._connect() as server:
                if self.sender.auth.user and self.sender.auth.password:
                    server.login(self.sender.auth.user, self.sender.auth.password)
                server.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            self.logger.error(f"SMTP邮件发送失败 - {type(e).__name__}: {str(e)}")
            raise DeliveryError(f"SMTP邮件发送失败: {e}") from e

        message_id = message['Message-ID']
        self.logger.info(f"邮件发送成功，MessageId: {message_id}")
        return message_id

    def build_message(self, subject: str, html_body: str) -> EmailMessage:
        """构建邮件"""
        message = EmailMessage()
        message['Subject'] = subject
        message['From'] = self.sender.formatted()
        message['To'] = ", ".join(self.email_config.recipients)
        message['Message-ID'] = make_msgid(domain=self.sender.address.rpartition('@')[2] or None)
        message.set_content(html_body, subtype='html')
        return message

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()

        if self.sender.secure:
            return smtplib.SMTP_SSL(self.sender.host, self.sender.port, timeout=self.timeout, context=context)

        server = smtplib.SMTP(self.sender.host, self.sender.port, timeout=self.timeout)
        try:
            server.ehlo()
            if server.has_extn('starttls'):
                server.starttls(context=context)
                server.ehlo()
        except (smtplib.SMTPException, OSError):
            server.close()
            raise
        return server


class SESEmailNotificationService(NotificationServiceInterface):
    """AWS SES邮件通知服务"""

    def __init__(self, email_config: EmailConfig, region_name: Optional[str] = None):
        """
        初始化SES邮件通知服务

        Args:
            email_config: 邮件配置
            region_name: AWS区域名称，如果为None则依次使用配置、AWS_REGION、us-east-1
        """
        self.email_config = email_config
        self.region_name = region_name or email_config.region or os.getenv('AWS_REGION', 'us-east-1')
        self.logger = logging.getLogger(__name__)

        self.ses_client = boto3.client('ses', region_name=self.region_name)
        self.logger.info(f"SES客户端初始化成功，区域: {self.region_name}")

    def send(self, subject: str, html_body: str) -> str:
        """
        通过SES发送HTML邮件

        Args:
            subject: 邮件主题
            html_body: HTML正文

        Returns:
            str: SES MessageId

        Raises:
            DeliveryError: SES拒绝或无法发送
        """
        try:
            response = self.ses_client.send_email(
                Source=self.email_config.sender.formatted(),
                Destination={'ToAddresses': self.email_config.recipients},
                Message={
                    'Subject': {'Data': subject, 'Charset': 'UTF-8'},
                    'Body': {'Html': {'Data': html_body, 'Charset': 'UTF-8'}}
                }
            )
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            self.logger.error(f"SES发送失败 - {error_code}: {error_message}")
            raise DeliveryError(f"SES发送失败: {error_code}: {error_message}") from e
        except BotoCoreError as e:
            self.logger.error(f"发送SES邮件时发生错误: {str(e)}")
            raise DeliveryError(f"SES发送失败: {e}") from e

        message_id = response['MessageId']
        self.logger.info(f"SES邮件发送成功，MessageId: {message_id}")
        return message_id


def create_notification_service(email_config: EmailConfig) -> NotificationServiceInterface:
    """
    根据配置创建邮件通知服务

    Args:
        email_config: 邮件配置

    Returns:
        NotificationServiceInterface: SMTP 或 SES 通知服务
    """
    if email_config.transport == 'smtp':
        return SMTPEmailNotificationService(email_config)
    if email_config.transport == 'ses':
        return SESEmailNotificationService(email_config)
    raise ConfigurationError(f"不支持的邮件发送方式: {email_config.transport!r}")
