"""
主机配置加载服务
"""
import os
import json
from typing import Any, Dict, List, Optional, Tuple
import logging

from ..interfaces import HostConfigLoaderInterface
from ..models import GlobalSettings, HostEntry, Priority
from .error_handler import ConfigurationError


class HostConfigLoader(HostConfigLoaderInterface):
    """
    主机配置加载器实现

    支持两种JSON格式：

    * 对象格式：``{"teams_url": ..., "owner": ..., "hostnames": [{...}, ...]}``
    * 数组格式：``[{"hostname": "example.com", "description": "Main site"}, ...]``
    """

    def __init__(self):
        """初始化主机配置加载器"""
        self.logger = logging.getLogger(__name__)

    def load(self, path: str) -> Tuple[List[HostEntry], GlobalSettings]:
        """
        从JSON文件加载主机列表和全局设置

        Args:
            path: JSON文件路径

        Returns:
            Tuple[List[HostEntry], GlobalSettings]: 主机列表和全局设置

        Raises:
            ConfigurationError: 文件不存在或JSON格式无效
        """
        if not os.path.isfile(path):
            raise ConfigurationError(f"JSON file '{path}' not found")

        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format in '{path}': {e}") from e
        except OSError as e:
            raise ConfigurationError(f"Could not read '{path}': {e}") from e

        entries, settings = self.parse(data)
        self.logger.info(f"从 {path} 加载了 {len(entries)} 个主机")
        return entries, settings

    def loads(self, text: str) -> Tuple[List[HostEntry], GlobalSettings]:
        """
        从JSON字符串加载主机列表和全局设置

        Raises:
            ConfigurationError: JSON格式无效
        """
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON format: {e}") from e

        return self.parse(data)

    def parse(self, data: Any) -> Tuple[List[HostEntry], GlobalSettings]:
        """
        解析已加载的JSON数据

        Args:
            data: JSON对象或数组

        Returns:
            Tuple[List[HostEntry], GlobalSettings]: 主机列表和全局设置
        """
        if isinstance(data, list):
            raw_hosts = data
            settings = GlobalSettings()
        elif isinstance(data, dict):
            raw_hosts = data.get('hostnames') or []
            if not isinstance(raw_hosts, list):
                raise ConfigurationError("Expected 'hostnames' to be an array of objects")
            settings = GlobalSettings(
                webhook_url=self._optional_str(data.get('teams_url') or data.get('webhook_url')),
                owner=self._optional_str(data.get('owner')),
                sns_topic_arn=self._optional_str(data.get('sns_topic_arn'))
            )
        else:
            raise ConfigurationError(
                "Expected JSON format with 'hostnames' array or direct array of objects"
            )

        entries = [self._parse_entry(raw, index) for index, raw in enumerate(raw_hosts, 1)]
        return entries, settings

    def apply_overrides(self, settings: GlobalSettings, overrides: Dict[str, Optional[str]]) -> GlobalSettings:
        """
        用环境变量等外部配置覆盖全局设置

        Args:
            settings: 文件中的全局设置
            overrides: 覆盖项（webhook_url / owner / sns_topic_arn），空值不覆盖

        Returns:
            GlobalSettings: 合并后的全局设置
        """
        return GlobalSettings(
            webhook_url=self._optional_str(overrides.get('webhook_url')) or settings.webhook_url,
            owner=self._optional_str(overrides.get('owner')) or settings.owner,
            sns_topic_arn=self._optional_str(overrides.get('sns_topic_arn')) or settings.sns_topic_arn
        )

    def _parse_entry(self, raw: Any, index: int) -> HostEntry:
        """
        解析单个主机配置，格式错误的条目转为空主机名，由批量检查逐个报告

        Args:
            raw: 原始条目
            index: 条目序号（从1开始）

        Returns:
            HostEntry: 主机配置
        """
        if isinstance(raw, str):
            return HostEntry(hostname=self._clean_hostname(raw))

        if not isinstance(raw, dict):
            self.logger.warning(f"第 {index} 个主机条目格式无效: {raw!r}")
            return HostEntry(hostname="", description=f"malformed entry #{index}")

        hostname = self._optional_str(raw.get('hostname'))
        if hostname is None:
            self.logger.warning(f"第 {index} 个主机条目缺少hostname字段")

        return HostEntry(
            hostname=self._clean_hostname(hostname or ""),
            description=self._optional_str(raw.get('description')),
            category=self._optional_str(raw.get('category')),
            priority=self._parse_priority(raw.get('priority'), hostname),
            environment=self._optional_str(raw.get('environment'))
        )

    def _parse_priority(self, value: Any, hostname: Optional[str]) -> Priority:
        """解析优先级，未知取值记为UNSET"""
        text = self._optional_str(value)
        if text is None:
            return Priority.UNSET

        try:
            return Priority(text.lower())
        except ValueError:
            self.logger.warning(f"主机 {hostname} 的优先级无效: {text}")
            return Priority.UNSET

    def _clean_hostname(self, hostname: str) -> str:
        """
        清理主机名格式

        Args:
            hostname: 原始主机名

        Returns:
            str: 清理后的主机名
        """
        hostname = hostname.strip()

        # 移除协议前缀
        if hostname.startswith('https://'):
            hostname = hostname[8:]
        elif hostname.startswith('http://'):
            hostname = hostname[7:]

        # 移除路径部分
        if '/' in hostname:
            hostname = hostname.split('/')[0]

        # 移除端口号
        if ':' in hostname:
            hostname = hostname.split(':')[0]

        return hostname.strip().lower()

    @staticmethod
    def _optional_str(value: Any) -> Optional[str]:
        """将null、空字符串统一转为None"""
        if value is None:
            return None
        text = str(value).strip()
        return text or None
