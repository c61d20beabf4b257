"""
配置加载与验证服务
"""
import json
import os
from dataclasses import dataclass, field
from email.utils import formataddr
from typing import Any, Dict, List, Optional, Tuple
import logging
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from babel import Locale, UnknownLocaleError

from ..exceptions import ConfigurationError, InvalidHostError
from ..messages import DEFAULT_LOCALE
from .host_spec import HostSpecParser

DEFAULT_CONFIG_PATH = "config.json"
SUPPORTED_TRANSPORTS = ('smtp', 'ses')
YAML_SUFFIXES = ('.yaml', '.yml')


@dataclass(frozen=True)
class SMTPAuth:
    user: str
    password: str = field(default="", repr=False)


@dataclass(frozen=True)
class SenderConfig:
    """发件人及SMTP服务器配置"""
    auth: SMTPAuth
    name: str = ""
    host: Optional[str] = None
    port: int = 465
    secure: bool = True

    @property
    def address(self) -> str:
        return self.auth.user

    def formatted(self) -> str:
        """'名称 <地址>' 形式的发件人"""
        return formataddr((self.name, self.address))


@dataclass(frozen=True)
class EmailConfig:
    sender: SenderConfig
    to: str
    transport: str = 'smtp'
    region: Optional[str] = None

    @property
    def recipients(self) -> List[str]:
        return [address.strip() for address in self.to.split(',') if address.strip()]


@dataclass(frozen=True)
class ScheduleConfig:
    hour: int = 10
    minute: int = 0
    timezone: str = "Asia/Shanghai"


@dataclass(frozen=True)
class ProbeConfig:
    timeout: Optional[float] = 10.0
    isolate_failures: bool = True


@dataclass(frozen=True)
class AppConfig:
    """进程启动时加载一次的只读配置"""
    email: EmailConfig
    hosts: Tuple[str, ...]
    locale: str = DEFAULT_LOCALE
    schedule: ScheduleConfig = field(default_factory=ScheduleConfig)
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    source: Optional[str] = None

    def to_log_dict(self) -> Dict[str, Any]:
        """用于记录日志的扁平配置（敏感字段由日志服务脱敏）"""
        return {
            'config_path': self.source,
            'hosts': ", ".join(self.hosts),
            'email_transport': self.email.transport,
            'email_from': self.email.sender.formatted(),
            'email_to': self.email.to,
            'smtp_host': f"{self.email.sender.host}:{self.email.sender.port}",
            'smtp_secure': self.email.sender.secure,
            'smtp_password': self.email.sender.auth.password,
            'locale': self.locale,
            'schedule': f"{self.schedule.hour:02d}:{self.schedule.minute:02d} {self.schedule.timezone}",
            'probe_timeout': self.probe.timeout,
            'isolate_failures': self.probe.isolate_failures,
        }


class ConfigLoader:
    """配置加载器"""

    def __init__(self, path: Optional[str] = None, env_var_name: str = "CONFIG_PATH"):
        """
        初始化配置加载器

        Args:
            path: 配置文件路径，如果为None则从环境变量读取
            env_var_name: 配置文件路径的环境变量名称
        """
        self.path = path or os.getenv(env_var_name) or DEFAULT_CONFIG_PATH
        self.logger = logging.getLogger(__name__)
        self.host_parser = HostSpecParser()

    def load(self) -> AppConfig:
        """
        读取并验证配置文件

        Returns:
            AppConfig: 配置

        Raises:
            ConfigurationError: 文件无法读取或内容无效
        """
        data = self._read(self.path)
        config = self.from_dict(data, source=self.path)
        self.logger.info(f"成功加载配置 {self.path}，共 {len(config.hosts)} 个主机")
        return config

    def _read(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, 'r', encoding='utf-8') as f:
                if path.lower().endswith(YAML_SUFFIXES):
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)
        except OSError as e:
            raise ConfigurationError(f"无法读取配置文件 {path}: {e}") from e
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigurationError(f"配置文件 {path} 格式错误: {e}") from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"配置文件 {path} 顶层必须是对象")
        return data

    def from_dict(self, data: Dict[str, Any], source: Optional[str] = None) -> AppConfig:
        """
        从字典构建配置，收集所有错误后一次性抛出

        Args:
            data: 原始配置
            source: 配置来源（用于日志）

        Returns:
            AppConfig: 配置
        """
        errors: List[str] = []

        hosts = self._validate_hosts(data.get('hosts'), errors)
        email = self._build_email(data.get('email'), errors)
        schedule = self._build_schedule(self._section(data, 'schedule', errors), errors)
        probe = self._build_probe(self._section(data, 'probe', errors), errors)

        locale = data.get('locale') or DEFAULT_LOCALE
        try:
            Locale.parse(locale)
        except (UnknownLocaleError, ValueError, TypeError):
            errors.append(f"locale无效: {locale!r}")

        if errors:
            raise ConfigurationError("配置验证失败", errors)

        return AppConfig(
            email=email,
            hosts=hosts,
            locale=locale,
            schedule=schedule,
            probe=probe,
            source=source
        )

    def _section(self, parent: Dict[str, Any], name: str, errors: List[str], prefix: str = "") -> Dict[str, Any]:
        """读取可选的子配置，缺省为空字典，不是对象时记录错误"""
        section = parent.get(name)
        if section is None:
            return {}
        if not isinstance(section, dict):
            errors.append(f"{prefix}{name} 必须是对象")
            return {}
        return section

    def _validate_hosts(self, hosts: Any, errors: List[str]) -> Tuple[str, ...]:
        if not isinstance(hosts, list) or not hosts:
            errors.append("hosts 必须是非空列表")
            return ()

        valid_hosts = []
        for host in hosts:
            try:
                self.host_parser.parse(host)
            except InvalidHostError as e:
                errors.append(str(e))
                continue
            valid_hosts.append(host.strip())

        return tuple(valid_hosts)

    def _build_email(self, email: Any, errors: List[str]) -> Optional[EmailConfig]:
        if not isinstance(email, dict):
            errors.append("缺少 email 配置")
            return None

        transport = email.get('transport', 'smtp')
        if transport not in SUPPORTED_TRANSPORTS:
            errors.append(f"不支持的邮件发送方式: {transport!r}")

        to = email.get('to')
        if not isinstance(to, str) or not to.strip():
            errors.append("email.to 不能为空")

        sender = email.get('from')
        if not isinstance(sender, dict):
            errors.append("缺少 email.from 配置")
            return None

        auth = self._section(sender, 'auth', errors, prefix="email.from.")
        user = auth.get('user')
        if not isinstance(user, str) or not user:
            errors.append("email.from.auth.user 不能为空")

        host = sender.get('host')
        if transport == 'smtp' and not host:
            errors.append("使用SMTP发送时 email.from.host 不能为空")

        port = sender.get('port', 465)
        if isinstance(port, bool) or not isinstance(port, int) or not 0 < port <= 65535:
            errors.append(f"email.from.port 无效: {port!r}")

        return EmailConfig(
            sender=SenderConfig(
                auth=SMTPAuth(user=user or "", password=str(auth.get('pass') or "")),
                name=sender.get('name') or "",
                host=host,
                port=port,
                secure=bool(sender.get('secure', True))
            ),
            to=to or "",
            transport=transport,
            region=email.get('region')
        )

    def _build_schedule(self, schedule: Dict[str, Any], errors: List[str]) -> ScheduleConfig:
        hour = schedule.get('hour', 10)
        minute = schedule.get('minute', 0)
        tz_name = schedule.get('timezone', "Asia/Shanghai")

        if not isinstance(hour, int) or not 0 <= hour <= 23:
            errors.append(f"schedule.hour 无效: {hour!r}")
        if not isinstance(minute, int) or not 0 <= minute <= 59:
            errors.append(f"schedule.minute 无效: {minute!r}")
        try:
            ZoneInfo(tz_name)
        except (ZoneInfoNotFoundError, ValueError, TypeError):
            errors.append(f"schedule.timezone 无效: {tz_name!r}")

        return ScheduleConfig(hour=hour, minute=minute, timezone=tz_name)

    def _build_probe(self, probe: Dict[str, Any], errors: List[str]) -> ProbeConfig:
        timeout = probe.get('timeout', 10.0)
        if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float)) or timeout <= 0):
            errors.append(f"probe.timeout 无效: {timeout!r}")

        return ProbeConfig(
            timeout=float(timeout) if isinstance(timeout, (int, float)) else None,
            isolate_failures=bool(probe.get('isolate_failures', True))
        )
