"""
SSL证书过期监控器
"""
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .interfaces import CertificateFetcherInterface, NotificationServiceInterface
from .models import (
    GlobalSettings,
    HostEntry,
    NotificationBatch,
    NotifyResult,
    NotifyStatus,
    RunOutcome,
    RunReport,
    RunSummary,
)
from .services.batch_runner import BatchRunner, utc_now
from .services.config_validator import ConfigValidator
from .services.error_handler import ConfigurationError
from .services.expiry_calculator import ExpiryCalculator
from .services.host_config import HostConfigLoader
from .services.logger import LoggerService
from .services.sns_notification import SNSNotificationService
from .services.webhook_notification import WebhookNotificationService


class CertificateExpiryMonitor:
    """SSL证书过期监控器主类：加载配置、批量检查、发送通知"""

    def __init__(self,
                 port: int = 443,
                 timeout: float = 10,
                 warning_days: int = 30,
                 max_workers: int = 1,
                 logger_service: Optional[LoggerService] = None,
                 fetcher: Optional[CertificateFetcherInterface] = None,
                 webhook_notifier: Optional[NotificationServiceInterface] = None,
                 sns_notifier: Optional[NotificationServiceInterface] = None,
                 now_provider: Callable[[], datetime] = utc_now):
        """
        初始化监控器

        Args:
            port: TLS端口
            timeout: 单个主机的超时时间（秒）
            warning_days: 提前警告天数
            max_workers: 并发检查线程数
            logger_service: 日志服务
            fetcher: 证书获取器
            webhook_notifier: Webhook通知服务
            sns_notifier: SNS通知服务
            now_provider: 当前时间来源
        """
        self.port = port
        self.timeout = timeout

        self.logger_service = logger_service or LoggerService()
        self.validator = ConfigValidator()
        self.config_loader = HostConfigLoader()
        self.expiry_calculator = ExpiryCalculator(warning_days=warning_days)
        self.batch_runner = BatchRunner(
            fetcher=fetcher,
            calculator=self.expiry_calculator,
            logger_service=self.logger_service,
            validator=self.validator,
            max_workers=max_workers,
            now_provider=now_provider
        )
        self.webhook_notifier = webhook_notifier or WebhookNotificationService(warning_days=warning_days)
        self.sns_notifier = sns_notifier or SNSNotificationService()

    def execute_from_file(self, path: str, overrides: Optional[Dict[str, Optional[str]]] = None) -> RunSummary:
        """
        从JSON文件加载配置并执行检查

        Args:
            path: 主机配置文件路径
            overrides: 覆盖文件中全局设置的值

        Returns:
            RunSummary: 运行结果
        """
        try:
            hosts, settings = self.config_loader.load(path)
        except ConfigurationError as e:
            return self._failed_summary(e, 0.0)

        if overrides:
            settings = self.config_loader.apply_overrides(settings, overrides)

        return self.execute(hosts, settings)

    def execute(self, hosts: List[HostEntry], settings: GlobalSettings) -> RunSummary:
        """
        执行SSL证书检查

        Args:
            hosts: 主机列表
            settings: 全局设置

        Returns:
            RunSummary: 运行结果，运行级配置错误时 outcome 为 FAILED
        """
        start_time = datetime.now(timezone.utc)
        self.logger_service.reset_stats()

        self.logger_service.log_configuration_info(
            self.validator.get_configuration_summary(hosts, settings, self.port, self.timeout)
        )
        self.validator.validate_global_settings(settings)

        try:
            report, batch = self.batch_runner.run(hosts, settings, self.port, self.timeout)
        except ConfigurationError as e:
            return self._failed_summary(e, (datetime.now(timezone.utc) - start_time).total_seconds())

        notifications = self._send_notifications(batch, settings)

        self.logger_service.log_execution_summary()

        return RunSummary(
            outcome=report.outcome,
            report=report,
            batch=batch,
            notifications=notifications,
            errors=[r.error_message for r in report.results if r.error_message],
            execution_time=(datetime.now(timezone.utc) - start_time).total_seconds()
        )

    def _send_notifications(self, batch: NotificationBatch, settings: GlobalSettings) -> List[NotifyResult]:
        """
        发送通知，通知失败只记录日志，不影响检查结果

        Args:
            batch: 通知批次
            settings: 全局设置

        Returns:
            List[NotifyResult]: 各渠道的发送结果
        """
        if batch.is_empty:
            self.logger_service.logger.info("所有证书状态正常，无需发送通知")
        else:
            self.logger_service.logger.warning(f"发现 {batch.total} 个即将过期或已过期的证书")

        channels = [(self.webhook_notifier, settings.webhook_url)]
        if settings.sns_topic_arn:
            channels.append((self.sns_notifier, settings.sns_topic_arn))

        results = []
        for notifier, target in channels:
            try:
                result = notifier.notify(target, batch, settings.owner)
            except Exception as e:
                channel = getattr(notifier, 'channel', type(notifier).__name__)
                self.logger_service.logger.error(f"发送{channel}通知时发生错误: {str(e)}")
                result = NotifyResult(NotifyStatus.FAILED, channel, error=str(e))

            self.logger_service.log_notification_result(result, batch.total)
            results.append(result)

        return results

    def _failed_summary(self, error: Exception, execution_time: float) -> RunSummary:
        self.logger_service.logger.error(f"配置错误，检查未执行: {str(error)}")
        return RunSummary(
            outcome=RunOutcome.FAILED,
            report=RunReport(),
            errors=[str(error)],
            execution_time=execution_time
        )
