"""
批量检查服务
"""
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple

from ..interfaces import CertificateFetcherInterface
from ..models import (
    CertificateResult,
    ErrorKind,
    GlobalSettings,
    HostEntry,
    NotificationBatch,
    NotificationEntry,
    RunReport,
)
from .config_validator import ConfigValidator
from .error_handler import FetchError, FetchErrorHandler
from .expiry_calculator import ExpiryCalculator
from .logger import LoggerService
from .ssl_checker import CertificateFetcher, format_expiry


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class BatchRunner:
    """
    批量检查器

    按主机列表顺序逐个获取并分类证书，单个主机失败不会中断整批检查。
    max_workers 大于1时使用线程池并发获取，结果仍按主机列表顺序汇总。
    """

    def __init__(self,
                 fetcher: Optional[CertificateFetcherInterface] = None,
                 calculator: Optional[ExpiryCalculator] = None,
                 logger_service: Optional[LoggerService] = None,
                 validator: Optional[ConfigValidator] = None,
                 max_workers: int = 1,
                 batch_size: int = 10,
                 now_provider: Callable[[], datetime] = utc_now):
        """
        初始化批量检查器

        Args:
            fetcher: 证书获取器
            calculator: 过期计算器
            logger_service: 日志服务
            validator: 配置验证器
            max_workers: 并发获取的最大线程数，1表示顺序执行
            batch_size: 每批记录日志的主机数量
            now_provider: 当前时间来源
        """
        self.fetcher = fetcher or CertificateFetcher()
        self.calculator = calculator or ExpiryCalculator()
        self.logger_service = logger_service or LoggerService()
        self.validator = validator or ConfigValidator()
        self.error_handler = FetchErrorHandler()
        self.max_workers = max_workers
        self.batch_size = batch_size
        self.now_provider = now_provider

    def run(self, hosts: List[HostEntry], settings: GlobalSettings,
            port: int = 443, timeout: float = 10) -> Tuple[RunReport, NotificationBatch]:
        """
        执行一次批量检查

        Args:
            hosts: 主机列表
            settings: 全局设置
            port: TLS端口
            timeout: 单个主机的超时时间（秒）

        Returns:
            Tuple[RunReport, NotificationBatch]: 检查报告和通知批次（可能为空）

        Raises:
            ConfigurationError: 运行参数无效或主机列表为空，此时不会检查任何主机
        """
        self.validator.validate_run_parameters(port, timeout, self.calculator.warning_days, self.max_workers)
        self.validator.validate_host_entries(hosts)

        self.logger_service.log_check_start(len(hosts))

        report = RunReport()
        total_batches = (len(hosts) + self.batch_size - 1) // self.batch_size

        for i in range(0, len(hosts), self.batch_size):
            batch = hosts[i:i + self.batch_size]
            batch_num = i // self.batch_size + 1

            self.logger_service.logger.info(f"处理第 {batch_num}/{total_batches} 批主机，包含 {len(batch)} 个主机")

            for result in self._check_hosts(batch, port, timeout):
                report.results.append(result)
                self.logger_service.log_certificate_result(result)

        self.logger_service.log_check_end()

        notification_batch = self.build_notification_batch(report, settings)
        return report, notification_batch

    def build_notification_batch(self, report: RunReport, settings: GlobalSettings) -> NotificationBatch:
        """
        按主机列表顺序收集即将过期和已过期的主机

        Args:
            report: 检查报告
            settings: 全局设置

        Returns:
            NotificationBatch: 通知批次
        """
        return NotificationBatch(
            generated_at=self.now_provider(),
            owner=settings.owner,
            entries=[NotificationEntry.from_result(r) for r in report.results if r.is_at_risk]
        )

    def _check_hosts(self, hosts: List[HostEntry], port: int, timeout: float) -> List[CertificateResult]:
        """检查一批主机，返回顺序与输入一致"""
        if self.max_workers <= 1 or len(hosts) <= 1:
            return [self.check_host(host, port, timeout) for host in hosts]

        with ThreadPoolExecutor(max_workers=min(self.max_workers, len(hosts))) as executor:
            return list(executor.map(lambda host: self.check_host(host, port, timeout), hosts))

    def check_host(self, host: HostEntry, port: int, timeout: float) -> CertificateResult:
        """
        检查单个主机，所有错误都转换为带错误信息的检查结果

        Args:
            host: 主机配置
            port: TLS端口
            timeout: 超时时间（秒）

        Returns:
            CertificateResult: 检查结果
        """
        config_error = self.validator.validate_host_entry(host)
        if config_error:
            if not isinstance(host, HostEntry):
                host = HostEntry(hostname="", description=repr(host))
            return CertificateResult(
                host=host,
                error_kind=ErrorKind.INVALID_HOST_ENTRY,
                error_message=config_error,
                suggested_action=self.error_handler.get_suggested_action(ErrorKind.INVALID_HOST_ENTRY)
            )

        try:
            expiry_date = self.fetcher.fetch(host.hostname, port, timeout)
        except FetchError as e:
            return self._error_result(host, e)
        except Exception as e:
            self.logger_service.log_error(host.hostname, e)
            return self._error_result(host, self.error_handler.unexpected_error(host.hostname, port, e))

        try:
            classification = self.calculator.classify(expiry_date, self.now_provider())
        except Exception as e:
            self.logger_service.log_error(host.hostname, e)
            return self._error_result(
                host, self.error_handler.unexpected_error(host.hostname, port, e, phase="parse")
            )

        return CertificateResult(
            host=host,
            expiry_date=expiry_date,
            state=classification.state,
            days_remaining=classification.days_remaining,
            formatted_expiry=format_expiry(expiry_date)
        )

    def _error_result(self, host: HostEntry, error: FetchError) -> CertificateResult:
        error_info = self.error_handler.handle_fetch_error(host.hostname, error)
        return CertificateResult(
            host=host,
            error_kind=error.kind,
            error_message=error_info['error_message'],
            suggested_action=error_info['suggested_action']
        )
