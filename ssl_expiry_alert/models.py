"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Tuple, Union

DEFAULT_PORT = 443

# 已过期证书的哨兵时间（Unix纪元起点，表示过期最久）
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


@dataclass(frozen=True)
class HostSpec:
    """待检查的主机及端口"""
    hostname: str
    port: int = DEFAULT_PORT

    def __str__(self) -> str:
        return f"{self.hostname}:{self.port}"


@dataclass(frozen=True)
class Expiry:
    """握手成功，读取到证书过期时间"""
    instant: datetime


@dataclass(frozen=True)
class AlreadyExpired:
    """握手因证书已过期而失败"""

    @property
    def instant(self) -> datetime:
        return EPOCH


@dataclass(frozen=True)
class ProbeFailed:
    """其它任何探测失败"""
    reason: str
    error: Optional[BaseException] = field(default=None, compare=False)


ProbeOutcome = Union[Expiry, AlreadyExpired, ProbeFailed]


class Tier(Enum):
    """紧急程度分级"""
    EXPIRED = "expired"
    URGENT_OR_SOON = "urgent_or_soon"
    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class Classification:
    """单个过期时间的分级结果"""
    days_until_expiry: int
    tier: Tier
    display_text: str
    notify: bool


@dataclass(frozen=True)
class ClassifiedEntry:
    """单个主机的检查结果"""
    hostname: str
    expiry_instant: Optional[datetime]
    tier: Tier
    display_text: str
    days_until_expiry: Optional[int] = None
    notify: bool = False

    @property
    def is_reportable(self) -> bool:
        """除OK以外的分级都需要出现在报告中"""
        return self.tier is not Tier.OK


@dataclass(frozen=True)
class Report:
    """一次检查的汇总报告"""
    entries: Tuple[ClassifiedEntry, ...]
    reportable: Tuple[ClassifiedEntry, ...]
    need_notify: bool
    subject: str
    body: str

    @property
    def reportable_count(self) -> int:
        return len(self.reportable)

    def count(self, tier: Tier) -> int:
        """统计某个分级的主机数量"""
        return len([entry for entry in self.entries if entry.tier is tier])
