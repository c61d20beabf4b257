"""
程序入口
"""
import asyncio
import sys
from datetime import datetime, timezone
from typing import Callable, Optional

from .exceptions import SSLExpiryAlertError
from .interfaces import NotificationServiceInterface
from .models import Report
from .services.config_loader import AppConfig, ConfigLoader
from .services.email_notification import create_notification_service
from .services.expiry_calculator import ExpiryClassifier
from .services.logger import LoggerService
from .services.notification_aggregator import NotificationAggregator
from .services.scheduler import CheckScheduler, RunMode
from .services.ssl_checker import CertificateExpiryProbe


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SSLExpiryAlertMonitor:
    """SSL证书到期告警主类，一次 execute() 即一次完整检查"""

    def __init__(self, config: AppConfig,
                 logger_service: Optional[LoggerService] = None,
                 aggregator: Optional[NotificationAggregator] = None,
                 notification_service: Optional[NotificationServiceInterface] = None,
                 clock: Callable[[], datetime] = utcnow):
        """
        初始化监控器

        Args:
            config: 启动时加载的配置
            logger_service: 日志服务
            aggregator: 汇总器，默认按配置创建
            notification_service: 邮件通知服务，默认按配置创建
            clock: 参考时钟
        """
        self.config = config
        self.logger_service = logger_service or LoggerService()
        self.aggregator = aggregator or NotificationAggregator(
            probe=CertificateExpiryProbe(timeout=config.probe.timeout),
            classifier=ExpiryClassifier(locale=config.locale),
            isolate_failures=config.probe.isolate_failures
        )
        self.notification_service = notification_service or create_notification_service(config.email)
        self.clock = clock

        self.logger_service.log_configuration_info(config.to_log_dict())

    async def execute(self) -> Report:
        """
        执行一次SSL证书检查

        Returns:
            Report: 检查报告

        Raises:
            SSLExpiryAlertError: 不隔离失败时的探测失败，或邮件发送失败
        """
        self.logger_service.log_check_start(len(self.config.hosts))

        try:
            report = await self.aggregator.run(self.config.hosts, self.clock())

            for entry in report.entries:
                self.logger_service.log_entry(entry)

            if report.need_notify:
                await self._send_notification(report)
            else:
                self.logger_service.log_notification_skipped(report.reportable_count)
        except SSLExpiryAlertError as e:
            self.logger_service.log_error(getattr(e, "hostname", "*"), e)
            raise
        finally:
            self.logger_service.log_check_end()
            self.logger_service.log_execution_summary()

        return report

    async def _send_notification(self, report: Report) -> str:
        # 邮件发送是阻塞调用，放到线程池里执行
        loop = asyncio.get_running_loop()
        message_id = await loop.run_in_executor(
            None, self.notification_service.send, report.subject, report.body
        )
        self.logger_service.log_notification_sent(message_id, report.reportable_count)
        return message_id


def main() -> int:
    """
    命令行入口

    RUN=1 时立即检查一次并等待完成，否则每天定时检查直到进程被终止。

    Returns:
        int: 退出码
    """
    logger_service = LoggerService()
    logger = logger_service.logger

    try:
        config = ConfigLoader().load()
        monitor = SSLExpiryAlertMonitor(config, logger_service=logger_service)
        scheduler = CheckScheduler(monitor.execute, RunMode.from_env(), config.schedule)
        scheduler.run_forever()
    except SSLExpiryAlertError as e:
        logger.error(f"SSL证书检查失败: {str(e)}")
        return 1
    except KeyboardInterrupt:
        logger.info("收到中断信号，退出")

    return 0


if __name__ == "__main__":
    sys.exit(main())
