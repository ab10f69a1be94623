"""
服务接口定义
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Tuple
from .models import CertificateResult, GlobalSettings, HostEntry, NotificationBatch, NotifyResult


class HostConfigLoaderInterface(ABC):
    """主机配置加载器接口"""

    @abstractmethod
    def load(self, path: str) -> Tuple[List[HostEntry], GlobalSettings]:
        """加载主机列表和全局设置"""
        pass


class CertificateFetcherInterface(ABC):
    """证书获取器接口"""

    @abstractmethod
    def fetch(self, hostname: str, port: int, timeout: float) -> datetime:
        """获取主机叶子证书的过期时间"""
        pass


class NotificationServiceInterface(ABC):
    """通知服务接口"""

    @abstractmethod
    def notify(self, target: Optional[str], batch: NotificationBatch,
               owner: Optional[str] = None) -> NotifyResult:
        """发送风险主机通知"""
        pass


class LoggerServiceInterface(ABC):
    """日志服务接口"""

    @abstractmethod
    def log_check_start(self, host_count: int):
        """记录检查开始"""
        pass

    @abstractmethod
    def log_certificate_result(self, result: CertificateResult):
        """记录单个主机的检查结果"""
        pass

    @abstractmethod
    def log_error(self, hostname: str, error: Exception):
        """记录错误信息"""
        pass
