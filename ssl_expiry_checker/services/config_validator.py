"""
配置验证服务
"""
import re
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import logging

from ..models import GlobalSettings, HostEntry
from .error_handler import ConfigurationError


HOSTNAME_PATTERN = re.compile(
    r'^(?:[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?\.)*[a-zA-Z0-9](?:[a-zA-Z0-9-]{0,61}[a-zA-Z0-9])?$'
)
SNS_ARN_PATTERN = re.compile(r'^arn:aws:sns:[a-z0-9-]+:\d{12}:[a-zA-Z0-9_-]+$')


class ConfigValidator:
    """配置验证器"""

    def __init__(self):
        """初始化配置验证器"""
        self.logger = logging.getLogger(__name__)

    def validate_run_parameters(self, port: Any, timeout: Any, warning_days: Any = 30,
                                max_workers: Any = 1) -> None:
        """
        验证运行参数，任何一项无效都会在检查开始前终止运行

        Args:
            port: 端口（1-65535）
            timeout: 超时时间（秒，>=1）
            warning_days: 提前警告天数（>=0）
            max_workers: 并发数（>=1）

        Raises:
            ConfigurationError: 参数无效
        """
        if not self._is_int(port) or not 1 <= port <= 65535:
            raise ConfigurationError(f"Invalid port number {port!r}. Must be between 1 and 65535")

        if not self._is_number(timeout) or timeout < 1:
            raise ConfigurationError(f"Invalid timeout {timeout!r}. Must be a positive integer")

        if not self._is_int(warning_days) or warning_days < 0:
            raise ConfigurationError(f"Invalid warning days {warning_days!r}. Must be zero or greater")

        if not self._is_int(max_workers) or max_workers < 1:
            raise ConfigurationError(f"Invalid worker count {max_workers!r}. Must be at least 1")

    def validate_host_entries(self, entries: List[HostEntry]) -> None:
        """
        验证主机列表非空

        Raises:
            ConfigurationError: 主机列表为空
        """
        if not entries:
            raise ConfigurationError("No hostnames found in configuration")

    def validate_host_entry(self, entry: Any) -> Optional[str]:
        """
        验证单个主机配置

        Args:
            entry: 主机配置

        Returns:
            Optional[str]: 错误描述，有效时返回None
        """
        if not isinstance(entry, HostEntry):
            return f"Malformed host entry: {entry!r}"

        hostname = entry.hostname
        if not isinstance(hostname, str) or not hostname.strip():
            return "Empty or invalid hostname"

        if not self.validate_hostname(hostname):
            return f"Invalid hostname: {hostname}"

        return None

    def validate_hostname(self, hostname: str) -> bool:
        """
        验证主机名格式（允许IPv4地址）

        Args:
            hostname: 主机名

        Returns:
            bool: 是否有效
        """
        if not hostname or not isinstance(hostname, str):
            return False

        hostname = hostname.strip()

        if len(hostname) > 253:
            return False

        if hostname.startswith('.') or hostname.endswith('.'):
            return False

        return bool(HOSTNAME_PATTERN.match(hostname))

    def validate_webhook_url(self, url: Optional[str]) -> bool:
        """
        验证Webhook地址

        Args:
            url: Webhook地址

        Returns:
            bool: 是否为http(s)地址
        """
        if not url:
            return False

        parsed = urlparse(url)
        return parsed.scheme in ('http', 'https') and bool(parsed.netloc)

    def validate_sns_topic_arn(self, topic_arn: Optional[str]) -> bool:
        """验证SNS主题ARN格式"""
        return bool(topic_arn) and bool(SNS_ARN_PATTERN.match(topic_arn))

    def validate_global_settings(self, settings: GlobalSettings) -> Dict[str, Any]:
        """
        验证全局设置（通知配置无效只产生警告，不终止运行）

        Args:
            settings: 全局设置

        Returns:
            Dict[str, Any]: 验证结果
        """
        result = {
            'is_valid': True,
            'warnings': [],
            'webhook_configured': bool(settings.webhook_url),
            'sns_configured': bool(settings.sns_topic_arn)
        }

        if settings.webhook_url and not self.validate_webhook_url(settings.webhook_url):
            result['is_valid'] = False
            result['warnings'].append(f"Webhook地址格式无效: {self.sanitize_url(settings.webhook_url)}")

        if settings.sns_topic_arn and not self.validate_sns_topic_arn(settings.sns_topic_arn):
            result['is_valid'] = False
            result['warnings'].append(f"SNS主题ARN格式无效: {self.sanitize_arn(settings.sns_topic_arn)}")

        if not result['webhook_configured'] and not result['sns_configured']:
            result['warnings'].append("未配置任何通知渠道，将跳过通知")

        for warning in result['warnings']:
            self.logger.warning(warning)

        return result

    def sanitize_url(self, url: Optional[str]) -> str:
        """
        隐藏URL中的敏感部分（Webhook地址的路径通常包含令牌）

        Args:
            url: 原始URL

        Returns:
            str: 只保留协议和主机的URL
        """
        if not url:
            return ""

        parsed = urlparse(url)
        if not parsed.scheme or not parsed.netloc:
            return "***"

        return f"{parsed.scheme}://{parsed.hostname}/***"

    def sanitize_arn(self, arn: Optional[str]) -> str:
        """隐藏ARN中的账号"""
        if not arn:
            return ""

        parts = arn.split(':')
        if len(parts) >= 6:
            return f"{':'.join(parts[:4])}:***:{parts[-1]}"
        return "***"

    def get_configuration_summary(self, entries: List[HostEntry], settings: GlobalSettings,
                                  port: int, timeout: float) -> Dict[str, Any]:
        """
        获取可安全写入日志的配置摘要

        Returns:
            Dict[str, Any]: 配置摘要
        """
        return {
            'host_count': len(entries),
            'port': port,
            'timeout_seconds': timeout,
            'webhook_url': self.sanitize_url(settings.webhook_url) or 'not configured',
            'sns_topic_arn': self.sanitize_arn(settings.sns_topic_arn) or 'not configured',
            'owner': settings.owner or 'Not specified'
        }

    @staticmethod
    def _is_int(value: Any) -> bool:
        return isinstance(value, int) and not isinstance(value, bool)

    @staticmethod
    def _is_number(value: Any) -> bool:
        return isinstance(value, (int, float)) and not isinstance(value, bool)
