"""
多主机检查汇总服务
"""
import asyncio
import html
from datetime import datetime
from typing import List, Optional, Sequence, Tuple, Union
import logging

from ..exceptions import InvalidHostError, ProbeFailure
from ..interfaces import CertificateProbeInterface
from ..messages import DEFAULT_LOCALE, get_messages
from ..models import ClassifiedEntry, HostSpec, ProbeFailed, ProbeOutcome, Report, Tier
from .expiry_calculator import ExpiryClassifier
from .host_spec import HostSpecParser

EXPIRED_STYLE = 'color: red;'
FAILED_STYLE = 'color: orange;'


class NotificationAggregator:
    """并发探测所有主机，排序、过滤并生成报告"""

    def __init__(self, probe: CertificateProbeInterface,
                 classifier: Optional[ExpiryClassifier] = None,
                 parser: Optional[HostSpecParser] = None,
                 isolate_failures: bool = True):
        """
        初始化汇总器

        Args:
            probe: 证书探测器
            classifier: 分级器，默认使用zh_CN文案
            parser: 主机字符串解析器
            isolate_failures: True 时单个主机失败只作为一条失败记录；
                False 时任何一个主机失败都会让整次检查失败
        """
        self.probe = probe
        self.classifier = classifier or ExpiryClassifier()
        self.parser = parser or HostSpecParser()
        self.isolate_failures = isolate_failures
        self.logger = logging.getLogger(__name__)

    @property
    def locale(self) -> str:
        return getattr(self.classifier, 'locale', DEFAULT_LOCALE)

    async def run(self, hosts: Sequence[str], now: datetime) -> Report:
        """
        检查所有主机并生成报告

        Args:
            hosts: 原始主机字符串列表
            now: 参考时间

        Returns:
            Report: 汇总报告（是否发送由调用方根据 need_notify 决定）

        Raises:
            InvalidHostError: 不隔离失败时，存在无效主机
            ProbeFailure: 不隔离失败时，存在探测失败的主机
        """
        targets = self._parse_hosts(hosts)

        outcomes = await asyncio.gather(*(self._probe_target(target) for target in targets))
        results = list(zip(hosts, outcomes))

        if not self.isolate_failures:
            for host, outcome in results:
                if isinstance(outcome, ProbeFailed):
                    raise ProbeFailure(host, outcome.reason) from outcome.error

        entries = self.classify_all(results, now)
        return self.build_report(entries)

    def _parse_hosts(self, hosts: Sequence[str]) -> List[Union[HostSpec, ProbeFailed]]:
        targets: List[Union[HostSpec, ProbeFailed]] = []
        for host in hosts:
            try:
                targets.append(self.parser.parse(host))
            except InvalidHostError as e:
                if not self.isolate_failures:
                    raise
                self.logger.error(str(e))
                targets.append(ProbeFailed(reason=str(e), error=e))
        return targets

    async def _probe_target(self, target: Union[HostSpec, ProbeFailed]) -> ProbeOutcome:
        if isinstance(target, ProbeFailed):
            return target
        return await self.probe.probe(target)

    def classify_all(self, results: Sequence[Tuple[str, ProbeOutcome]], now: datetime) -> List[ClassifiedEntry]:
        """
        对所有探测结果分级，按过期时间升序排列，失败记录排在最后

        Args:
            results: (主机, 探测结果) 列表
            now: 参考时间

        Returns:
            List[ClassifiedEntry]: 排好序的检查结果
        """
        expiring: List[ClassifiedEntry] = []
        failed: List[ClassifiedEntry] = []

        for host, outcome in results:
            if isinstance(outcome, ProbeFailed):
                failed.append(ClassifiedEntry(
                    hostname=host,
                    expiry_instant=None,
                    tier=Tier.FAILED,
                    display_text=get_messages(self.locale)['failed'].format(reason=outcome.reason),
                    notify=True
                ))
                continue

            classification = self.classifier.classify(outcome.instant, now)
            expiring.append(ClassifiedEntry(
                hostname=host,
                expiry_instant=outcome.instant,
                tier=classification.tier,
                display_text=classification.display_text,
                days_until_expiry=classification.days_until_expiry,
                notify=classification.notify
            ))

        expiring.sort(key=lambda entry: entry.expiry_instant)
        return expiring + failed

    def build_report(self, entries: Sequence[ClassifiedEntry]) -> Report:
        """
        根据排好序的检查结果生成报告

        Args:
            entries: 检查结果

        Returns:
            Report: 报告
        """
        reportable = tuple(entry for entry in entries if entry.is_reportable)
        need_notify = any(entry.notify for entry in entries)

        return Report(
            entries=tuple(entries),
            reportable=reportable,
            need_notify=need_notify,
            subject=self.format_subject(len(reportable)),
            body=self.convert_to_html_list(reportable)
        )

    def format_subject(self, count: int) -> str:
        """格式化邮件主题，包含需要关注的主机数量"""
        return get_messages(self.locale)['subject'].format(count=count)

    def convert_to_html_list(self, entries: Sequence[ClassifiedEntry]) -> str:
        """
        把检查结果渲染为HTML无序列表

        Args:
            entries: 需要报告的检查结果

        Returns:
            str: HTML
        """
        items = []
        for entry in entries:
            text = html.escape(entry.display_text)
            if entry.tier is Tier.EXPIRED:
                text = f'<span style="{EXPIRED_STYLE}">{text}</span>'
            elif entry.tier is Tier.FAILED:
                text = f'<span style="{FAILED_STYLE}">{text}</span>'
            items.append(f"<li><strong>{html.escape(entry.hostname)}</strong>: {text}</li>")

        return "<ul>" + "".join(items) + "</ul>"
