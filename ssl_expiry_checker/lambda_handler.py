"""
AWS Lambda函数入口点
"""
import os
from typing import Dict, Any
from datetime import datetime, timezone

from .models import RunOutcome, RunSummary, RunReport
from .monitor import CertificateExpiryMonitor
from .services.error_handler import ConfigurationError
from .services.host_config import HostConfigLoader
from .services.logger import LoggerService


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError:
        raise ConfigurationError(f"环境变量 {name} 必须是整数: {value!r}")


def _env_overrides() -> Dict[str, Any]:
    return {
        'webhook_url': os.getenv('WEBHOOK_URL'),
        'owner': os.getenv('OWNER'),
        'sns_topic_arn': os.getenv('SNS_TOPIC_ARN')
    }


def run_from_environment(logger_service: LoggerService) -> RunSummary:
    """
    根据环境变量执行一次检查

    HOSTS_FILE 指向JSON配置文件，HOSTS_JSON 直接提供JSON内容（优先）。

    Args:
        logger_service: 日志服务

    Returns:
        RunSummary: 运行结果
    """
    try:
        monitor = CertificateExpiryMonitor(
            port=_int_env('PORT', 443),
            timeout=_int_env('TIMEOUT', 10),
            warning_days=_int_env('WARNING_DAYS', 30),
            max_workers=_int_env('MAX_WORKERS', 1),
            logger_service=logger_service
        )

        hosts_json = os.getenv('HOSTS_JSON')
        if hosts_json:
            loader = HostConfigLoader()
            hosts, settings = loader.loads(hosts_json)
            settings = loader.apply_overrides(settings, _env_overrides())
            return monitor.execute(hosts, settings)

        hosts_file = os.getenv('HOSTS_FILE')
        if not hosts_file:
            raise ConfigurationError("HOSTS_FILE 或 HOSTS_JSON 环境变量未设置")

        return monitor.execute_from_file(hosts_file, _env_overrides())

    except ConfigurationError as e:
        logger_service.logger.error(f"配置错误: {str(e)}")
        return RunSummary(outcome=RunOutcome.FAILED, report=RunReport(), errors=[str(e)])


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Lambda函数入口点

    Args:
        event: EventBridge触发事件
        context: Lambda运行时上下文

    Returns:
        dict: 执行结果和统计信息
    """
    logger_service = LoggerService()
    summary = run_from_environment(logger_service)
    report = summary.report

    response = {
        'statusCode': 200,
        'body': {
            'message': 'SSL certificate check completed',
            'outcome': summary.outcome.value,
            'summary': {
                'processed': report.processed,
                'valid': report.valid_count,
                'expiring_soon': report.expiring_soon_count,
                'expired': report.expired_count,
                'failed': report.failed_count,
                'execution_time_seconds': summary.execution_time
            },
            'at_risk_hosts': [entry.hostname for entry in summary.batch.entries] if summary.batch else [],
            'notifications': {n.channel: n.status.value for n in summary.notifications},
            'errors': summary.errors[:5],  # 只返回前5个错误
            'timestamp': datetime.now(timezone.utc).isoformat()
        }
    }

    if summary.outcome is RunOutcome.FAILED:
        response['statusCode'] = 500
        response['body']['message'] = 'SSL certificate check failed to execute'

    return response
