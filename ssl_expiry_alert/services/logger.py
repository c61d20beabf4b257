"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from ..interfaces import LoggerServiceInterface
from ..models import ClassifiedEntry, Tier


def _empty_stats() -> Dict[str, Any]:
    return {
        'start_time': None,
        'end_time': None,
        'total_hosts': 0,
        'expired': 0,
        'expiring_soon': 0,
        'healthy': 0,
        'failed_checks': 0,
        'errors': []
    }


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "ssl_expiry_alert", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        self.execution_stats = _empty_stats()

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)
            handler.setFormatter(logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            ))
            self.logger.addHandler(handler)

        self.logger.propagate = False

    def log_check_start(self, host_count: int):
        """
        记录检查开始，并重置上一次检查的统计

        Args:
            host_count: 要检查的主机数量
        """
        self.reset_stats()
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_hosts'] = host_count

        self.logger.info(f"开始检查所有主机的SSL证书，共 {host_count} 个主机")

    def log_entry(self, entry: ClassifiedEntry):
        """
        记录单个主机的检查结果

        Args:
            entry: 检查结果
        """
        if entry.tier is Tier.FAILED:
            self.execution_stats['failed_checks'] += 1
            self.logger.error(f"证书检查失败 - 主机: {entry.hostname}, {entry.display_text}")
            return

        expiry = entry.expiry_instant.isoformat() if entry.expiry_instant else "-"

        if entry.tier is Tier.EXPIRED:
            self.execution_stats['expired'] += 1
            self.logger.warning(f"证书已过期 - 主机: {entry.hostname}, 过期时间: {expiry}")
        elif entry.tier is Tier.URGENT_OR_SOON:
            self.execution_stats['expiring_soon'] += 1
            self.logger.warning(
                f"证书即将过期 - 主机: {entry.hostname}, "
                f"过期时间: {expiry}, "
                f"剩余天数: {entry.days_until_expiry} 天"
            )
        else:
            self.execution_stats['healthy'] += 1
            self.logger.info(
                f"证书正常 - 主机: {entry.hostname}, "
                f"过期时间: {expiry}, "
                f"剩余天数: {entry.days_until_expiry} 天"
            )

    def log_error(self, hostname: str, error: Exception):
        """
        记录错误信息

        Args:
            hostname: 主机名，整次检查失败时为 "*"
            error: 异常对象
        """
        self.execution_stats['errors'].append({
            'hostname': hostname,
            'error_type': type(error).__name__,
            'error_message': str(error),
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

        self.logger.error(f"主机 {hostname} 检查时发生错误: {type(error).__name__}: {str(error)}")
        self.logger.debug(f"主机 {hostname} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_check_end(self):
        """记录检查结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)
        self.logger.info("SSL证书检查完成")

    def log_notification_sent(self, message_id: str, host_count: int):
        """
        记录邮件发送成功

        Args:
            message_id: 邮件服务返回的消息ID
            host_count: 报告中的主机数量
        """
        self.logger.info(f"邮件已发送 [id={message_id}]，报告主机数量: {host_count}")

    def log_notification_skipped(self, host_count: int):
        """记录无需发送通知"""
        self.logger.info(f"没有14天内过期的证书，无需发送通知（报告主机数量: {host_count}）")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息

        Args:
            config: 配置信息字典
        """
        safe_config = self._sanitize_config(config)

        self.logger.info("系统配置信息:")
        for key, value in safe_config.items():
            self.logger.info(f"  {key}: {value}")

    def _sanitize_config(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """
        清理配置信息中的敏感数据

        Args:
            config: 原始配置

        Returns:
            Dict[str, Any]: 清理后的配置
        """
        sensitive_keys = {'pass', 'password', 'secret', 'token', 'credential', 'key'}
        sensitive_suffixes = ('_pass', '_password', '_secret', '_token', '_key')

        safe_config = {}
        for key, value in config.items():
            key_lower = key.lower()
            is_sensitive = key_lower in sensitive_keys or key_lower.endswith(sensitive_suffixes)

            if is_sensitive and isinstance(value, str) and value:
                safe_config[key] = value[:3] + "***" if len(value) > 3 else "***"
            else:
                safe_config[key] = value

        return safe_config

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0.0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_hosts': stats['total_hosts'],
            'expired': stats['expired'],
            'expiring_soon': stats['expiring_soon'],
            'healthy': stats['healthy'],
            'failed_checks': stats['failed_checks'],
            'error_count': len(stats['errors']),
            'errors': stats['errors']
        }

    def log_execution_summary(self):
        """记录执行摘要"""
        summary = self.get_execution_summary()

        self.logger.info("=" * 50)
        self.logger.info("执行摘要")
        self.logger.info("=" * 50)
        self.logger.info(f"执行时长: {summary['duration_seconds']:.2f} 秒")
        self.logger.info(f"总主机数: {summary['total_hosts']}")
        self.logger.info(f"已过期: {summary['expired']}")
        self.logger.info(f"即将过期: {summary['expiring_soon']}")
        self.logger.info(f"正常: {summary['healthy']}")
        self.logger.info(f"检查失败: {summary['failed_checks']}")

        if summary['errors']:
            self.logger.info(f"错误数量: {summary['error_count']}")
            for i, error in enumerate(summary['errors'][:5], 1):  # 只显示前5个错误
                self.logger.info(f"  错误 {i}: {error['hostname']} - {error['error_type']}: {error['error_message']}")

        self.logger.info("=" * 50)

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = _empty_stats()
