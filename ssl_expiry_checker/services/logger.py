"""
日志服务
"""
import os
import logging
import traceback
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from ..interfaces import LoggerServiceInterface
from ..models import CertificateResult, NotifyResult, NotifyStatus
from .error_handler import FetchErrorHandler


class LoggerService(LoggerServiceInterface):
    """日志服务实现"""

    def __init__(self, logger_name: str = "ssl_expiry_checker", log_level: Optional[str] = None):
        """
        初始化日志服务

        Args:
            logger_name: 日志器名称
            log_level: 日志级别，如果为None则从环境变量读取
        """
        self.logger_name = logger_name
        self.log_level = log_level or os.getenv('LOG_LEVEL', 'INFO')

        # 配置日志器
        self.logger = logging.getLogger(logger_name)
        self._configure_logger()

        self.reset_stats()

    def _configure_logger(self):
        """配置日志器"""
        level = getattr(logging, self.log_level.upper(), logging.INFO)
        self.logger.setLevel(level)

        # 避免重复添加处理器
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setLevel(level)

            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
                datefmt='%Y-%m-%d %H:%M:%S'
            )
            handler.setFormatter(formatter)

            self.logger.addHandler(handler)

        # 防止日志传播到根日志器
        self.logger.propagate = False

    def log_check_start(self, host_count: int):
        """
        记录检查开始

        Args:
            host_count: 要检查的主机数量
        """
        self.execution_stats['start_time'] = datetime.now(timezone.utc)
        self.execution_stats['total_hosts'] = host_count

        self.logger.info(f"开始SSL证书检查，共 {host_count} 个主机")

    def log_certificate_result(self, result: CertificateResult):
        """
        记录单个主机的检查结果

        Args:
            result: 检查结果
        """
        if not result.is_valid:
            self.execution_stats['failed_checks'] += 1
            self.execution_stats['errors'].append({
                'hostname': result.hostname,
                'error_type': result.error_kind.value if result.error_kind else 'Unknown',
                'error_message': result.error_message
            })
            self.logger.error(
                f"证书检查失败 - 主机: {result.hostname or '<empty>'}, "
                f"错误: {result.error_message}"
            )
            return

        self.execution_stats['successful_checks'] += 1

        if result.is_expired:
            self.execution_stats['expired'] += 1
            self.logger.warning(
                f"证书已过期 - 主机: {result.hostname}, "
                f"过期时间: {result.expiry_date.isoformat()}, "
                f"已过期: {abs(result.days_remaining)} 天"
            )
        elif result.is_expiring_soon:
            self.execution_stats['expiring_soon'] += 1
            self.logger.warning(
                f"证书即将过期 - 主机: {result.hostname}, "
                f"过期时间: {result.expiry_date.isoformat()}, "
                f"剩余天数: {result.days_remaining} 天"
            )
        else:
            self.logger.info(
                f"证书正常 - 主机: {result.hostname}, "
                f"过期时间: {result.expiry_date.isoformat()}, "
                f"剩余天数: {result.days_remaining} 天"
            )

    def log_error(self, hostname: str, error: Exception):
        """
        记录未预期的错误

        Args:
            hostname: 主机名
            error: 异常对象
        """
        self.logger.error(f"主机 {hostname} 检查时发生错误: {type(error).__name__}: {str(error)}")

        # 详细的堆栈跟踪（调试级别）
        self.logger.debug(f"主机 {hostname} 错误堆栈跟踪:\n{traceback.format_exc()}")

    def log_check_end(self):
        """记录检查结束"""
        self.execution_stats['end_time'] = datetime.now(timezone.utc)

        if self.execution_stats['start_time']:
            duration = (self.execution_stats['end_time'] - self.execution_stats['start_time']).total_seconds()
        else:
            duration = 0

        self.logger.info(f"SSL证书检查完成，总执行时间: {duration:.2f} 秒")
        self.logger.info(
            f"检查统计: 总计 {self.execution_stats['total_hosts']} 个主机, "
            f"成功 {self.execution_stats['successful_checks']} 个, "
            f"失败 {self.execution_stats['failed_checks']} 个"
        )

    def log_notification_result(self, result: NotifyResult, entry_count: int):
        """
        记录通知发送状态

        Args:
            result: 通知结果
            entry_count: 通知中包含的主机数量
        """
        if result.status is NotifyStatus.SENT:
            self.logger.info(f"{result.channel} 通知发送成功，包含 {entry_count} 个主机")
        elif result.status is NotifyStatus.SKIPPED:
            self.logger.info(f"{result.channel} 通知已跳过: {result.detail}")
        else:
            self.logger.error(f"{result.channel} 通知发送失败: {result.error}")

    def log_configuration_info(self, config: Dict[str, Any]):
        """
        记录配置信息（调用方负责事先隐藏敏感值）

        Args:
            config: 配置信息字典
        """
        self.logger.info("系统配置信息:")
        for key, value in config.items():
            self.logger.info(f"  {key}: {value}")

    def get_execution_summary(self) -> Dict[str, Any]:
        """
        获取执行摘要

        Returns:
            Dict[str, Any]: 执行摘要信息
        """
        stats = self.execution_stats
        duration = 0
        if stats['start_time'] and stats['end_time']:
            duration = (stats['end_time'] - stats['start_time']).total_seconds()

        return {
            'start_time': stats['start_time'].isoformat() if stats['start_time'] else None,
            'end_time': stats['end_time'].isoformat() if stats['end_time'] else None,
            'duration_seconds': duration,
            'total_hosts': stats['total_hosts'],
            'successful_checks': stats['successful_checks'],
            'failed_checks': stats['failed_checks'],
            'expiring_soon': stats['expiring_soon'],
            'expired': stats['expired'],
            'success_rate': (
                stats['successful_checks'] / stats['total_hosts']
                if stats['total_hosts'] > 0 else 0
            ),
            'error_statistics': FetchErrorHandler().get_error_statistics(stats['errors']),
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
        self.logger.info(f"成功检查: {summary['successful_checks']}")
        self.logger.info(f"失败检查: {summary['failed_checks']}")
        self.logger.info(f"即将过期: {summary['expiring_soon']}")
        self.logger.info(f"已过期: {summary['expired']}")
        self.logger.info(f"成功率: {summary['success_rate']:.1%}")

        error_stats = summary['error_statistics']
        if error_stats['total_errors']:
            self.logger.info(
                f"错误数量: {error_stats['total_errors']}，"
                f"最常见: {error_stats['most_common_error']} ({error_stats['most_common_error_count']})"
            )
            for i, error in enumerate(summary['errors'][:5], 1):  # 只显示前5个错误
                self.logger.info(f"  错误 {i}: {error['hostname']} - {error['error_type']}: {error['error_message']}")

            if len(summary['errors']) > 5:
                self.logger.info(f"  ... 还有 {len(summary['errors']) - 5} 个错误")

        self.logger.info("=" * 50)

    def reset_stats(self):
        """重置执行统计"""
        self.execution_stats = {
            'start_time': None,
            'end_time': None,
            'total_hosts': 0,
            'successful_checks': 0,
            'failed_checks': 0,
            'expiring_soon': 0,
            'expired': 0,
            'errors': []
        }
