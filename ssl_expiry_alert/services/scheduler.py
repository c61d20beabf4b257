"""
检查调度服务
"""
import asyncio
import os
import signal
from enum import Enum
from typing import Any, Awaitable, Callable, Mapping, Optional
import logging

from apscheduler.events import EVENT_JOB_ERROR, EVENT_JOB_MAX_INSTANCES
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .config_loader import ScheduleConfig

JOB_ID = "ssl-expiry-check"
RUN_ENV_VAR = "RUN"


class RunMode(Enum):
    """运行模式，进程启动时确定一次"""
    IMMEDIATE = "immediate"
    RECURRING = "recurring"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "RunMode":
        """RUN=1 时立即执行一次，其它情况每天定时执行"""
        environ = os.environ if environ is None else environ
        return cls.IMMEDIATE if environ.get(RUN_ENV_VAR) == '1' else cls.RECURRING


class CheckScheduler:
    """
    检查调度器

    立即模式下执行一次并等待完成；定时模式下在指定时区每天固定时间触发。
    上一次检查仍在进行时到达的触发会被跳过。
    """

    def __init__(self, job: Callable[[], Awaitable[Any]], mode: RunMode,
                 schedule: Optional[ScheduleConfig] = None):
        """
        初始化调度器

        Args:
            job: 执行一次完整检查的协程函数
            mode: 运行模式
            schedule: 定时配置，默认每天 10:00 (Asia/Shanghai)
        """
        self.job = job
        self.mode = mode
        self.schedule = schedule or ScheduleConfig()
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.logger = logging.getLogger(__name__)
        self._stopped: Optional[asyncio.Event] = None

    @property
    def running(self) -> bool:
        return self.scheduler is not None and self.scheduler.running

    def run_forever(self):
        """
        按运行模式阻塞执行

        立即模式：执行一次检查，异常直接抛出。
        定时模式：安装每日触发器，直到收到 SIGINT/SIGTERM。
        """
        if self.mode is RunMode.IMMEDIATE:
            self.logger.info("立即执行一次检查...")
            asyncio.run(self.job())
            return

        asyncio.run(self._serve())

    async def _serve(self):
        self._stopped = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.stop)
            except (NotImplementedError, RuntimeError):
                # 非主线程或不支持信号的平台
                self.logger.debug(f"无法注册信号处理器: {sig}")

        self.start()
        try:
            await self._stopped.wait()
        finally:
            self.stop()

    def start(self):
        """
        安装每日触发器，必须在运行中的事件循环内调用

        调度器由本对象持有，直到 stop() 被调用。
        """
        if self.running:
            return

        trigger = CronTrigger(
            hour=self.schedule.hour,
            minute=self.schedule.minute,
            timezone=self.schedule.timezone
        )

        self.scheduler = AsyncIOScheduler(timezone=self.schedule.timezone)
        self.scheduler.add_listener(self._on_job_event, EVENT_JOB_ERROR | EVENT_JOB_MAX_INSTANCES)
        self.scheduler.add_job(
            self.job,
            trigger,
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True
        )
        self.scheduler.start()
        job = self.scheduler.get_job(JOB_ID)

        self.logger.info(
            f"已安装每日检查任务: 每天 {self.schedule.hour:02d}:{self.schedule.minute:02d} "
            f"({self.schedule.timezone})，下次执行时间: {job.next_run_time}"
        )

    def stop(self):
        """停止调度器"""
        if self.running:
            self.scheduler.shutdown(wait=False)
            self.logger.info("检查调度器已停止")
        if self._stopped is not None:
            self._stopped.set()

    def _on_job_event(self, event):
        if event.code == EVENT_JOB_MAX_INSTANCES:
            self.logger.warning("上一次检查尚未完成，跳过本次触发")
            return

        self.logger.error(
            f"本次检查失败，等待下一次触发: {type(event.exception).__name__}: {event.exception}"
        )
