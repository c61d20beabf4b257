"""
证书过期分级服务
"""
from datetime import datetime, timedelta

from babel.dates import format_timedelta

from ..messages import DEFAULT_LOCALE, get_messages
from ..models import Classification, Tier

# 30天内过期的证书进入报告
REPORT_WINDOW_DAYS = 30

# 14天内过期的证书触发通知
NOTIFY_WINDOW_DAYS = 14

ONE_DAY = timedelta(days=1)

# 大于报告窗口内任何单位换算值，保证始终以“天”为单位显示
_DAY_ONLY_THRESHOLD = REPORT_WINDOW_DAYS + 1


class ExpiryClassifier:
    """证书过期分级器"""

    def __init__(self, locale: str = DEFAULT_LOCALE,
                 report_window_days: int = REPORT_WINDOW_DAYS,
                 notify_window_days: int = NOTIFY_WINDOW_DAYS):
        """
        初始化分级器

        Args:
            locale: 相对时间文案使用的locale，默认zh_CN
            report_window_days: 进入报告的天数阈值（不含）
            notify_window_days: 触发通知的天数阈值（含）
        """
        self.locale = locale
        self.report_window_days = report_window_days
        self.notify_window_days = notify_window_days
        self.messages = get_messages(locale)

    def calculate_days_until_expiry(self, expiry_date: datetime, now: datetime) -> int:
        """
        计算距离过期的天数

        使用内置 round()，恰好半天时取偶数（银行家舍入）。

        Args:
            expiry_date: 过期时间
            now: 参考时间

        Returns:
            int: 剩余天数（负数表示已过期）
        """
        return round((expiry_date - now) / ONE_DAY)

    def should_notify(self, days_until_expiry: int) -> bool:
        """是否触发通知"""
        return days_until_expiry <= self.notify_window_days

    def classify(self, expiry_date: datetime, now: datetime) -> Classification:
        """
        对单个过期时间分级

        Args:
            expiry_date: 过期时间
            now: 参考时间

        Returns:
            Classification: 剩余天数、分级、显示文本以及是否触发通知
        """
        days = self.calculate_days_until_expiry(expiry_date, now)

        if days < 0:
            tier = Tier.EXPIRED
            display_text = self.messages['expired']
        elif days < self.report_window_days:
            tier = Tier.URGENT_OR_SOON
            display_text = self.format_relative(days)
        else:
            tier = Tier.OK
            display_text = self.format_relative(days)

        return Classification(
            days_until_expiry=days,
            tier=tier,
            display_text=display_text,
            notify=self.should_notify(days)
        )

    def format_relative(self, days: int) -> str:
        """
        生成本地化的相对时间文案，如 "5天后过期" / "expires in 5 days"

        按四舍五入后的天数渲染，文案与 days_until_expiry 始终一致。

        Args:
            days: 剩余天数（不小于0）

        Returns:
            str: 文案
        """
        relative = format_timedelta(
            timedelta(days=max(days, 0)),
            granularity='day',
            threshold=_DAY_ONLY_THRESHOLD,
            add_direction=True,
            format='long',
            locale=self.locale
        )
        return self.messages['expires'].format(relative=relative)
