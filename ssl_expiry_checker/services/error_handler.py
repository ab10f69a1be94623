"""
错误处理服务
"""
import socket
import ssl
from typing import Any, Dict, List, Optional
from datetime import datetime, timezone
import logging

from ..models import ErrorKind


CONNECTION_HINT = (
    "possible causes: invalid hostname, network connectivity issues, "
    "SSL/TLS connection problems, firewall blocking the connection"
)
UNEXPECTED_ERROR_HINT = "unexpected error while checking this host, see the log for the stack trace"


class SSLExpiryCheckerError(Exception):
    """所有自定义异常的基类"""


class ConfigurationError(SSLExpiryCheckerError):
    """运行级配置错误（端口、超时、主机列表、配置文件）"""


class FetchError(SSLExpiryCheckerError):
    """获取证书失败"""

    def __init__(self, kind: ErrorKind, message: str, unexpected: bool = False):
        super().__init__(message)
        self.kind = kind
        self.message = message
        # 由未预期的异常（程序缺陷而非网络问题）转换而来
        self.unexpected = unexpected

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


class NotifyError(SSLExpiryCheckerError):
    """通知投递失败"""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class FetchErrorHandler:
    """证书获取错误处理器"""

    def __init__(self):
        """初始化错误处理器"""
        self.logger = logging.getLogger(__name__)

    def classify_exception(self, error: Exception, phase: str = "connect") -> ErrorKind:
        """
        将底层异常映射为错误类型

        Args:
            error: 异常对象
            phase: 出错的阶段（connect / handshake / parse）

        Returns:
            ErrorKind: 错误类型
        """
        if isinstance(error, FetchError):
            return error.kind

        # socket.timeout 是 TimeoutError 的别名，必须先于 OSError 判断
        if isinstance(error, (TimeoutError, socket.timeout)):
            return ErrorKind.TIMEOUT

        if isinstance(error, ssl.SSLError):
            return ErrorKind.TLS_HANDSHAKE_FAILURE

        if isinstance(error, (ValueError, TypeError)) or phase == "parse":
            return ErrorKind.CERTIFICATE_PARSE_FAILURE

        if isinstance(error, OSError):
            if phase == "handshake":
                return ErrorKind.TLS_HANDSHAKE_FAILURE
            return ErrorKind.DNS_OR_CONNECT_FAILURE

        if phase == "handshake":
            return ErrorKind.TLS_HANDSHAKE_FAILURE
        return ErrorKind.DNS_OR_CONNECT_FAILURE

    def to_fetch_error(self, hostname: str, port: int, error: Exception,
                       phase: str = "connect") -> FetchError:
        """
        将底层异常包装为FetchError

        Args:
            hostname: 主机名
            port: 端口
            error: 原始异常
            phase: 出错的阶段

        Returns:
            FetchError: 带类型的获取错误
        """
        if isinstance(error, FetchError):
            return error

        kind = self.classify_exception(error, phase)
        detail = str(error) or type(error).__name__

        if kind is ErrorKind.TIMEOUT:
            message = f"Timed out while connecting to {hostname}:{port} ({detail})"
        elif kind is ErrorKind.DNS_OR_CONNECT_FAILURE:
            message = f"Could not connect to {hostname}:{port} ({detail})"
        elif kind is ErrorKind.TLS_HANDSHAKE_FAILURE:
            message = f"TLS handshake with {hostname}:{port} failed ({detail})"
        else:
            message = f"Could not parse certificate of {hostname}:{port} ({detail})"

        return FetchError(kind, message)

    def unexpected_error(self, hostname: str, port: int, error: Exception,
                         phase: str = "connect") -> FetchError:
        """
        包装检查过程中未预期的异常

        错误类型仍按阶段归类，但信息和诊断提示不会误导为网络问题。

        Args:
            hostname: 主机名
            port: 端口
            error: 原始异常
            phase: 出错的阶段

        Returns:
            FetchError: unexpected 为 True 的获取错误
        """
        return FetchError(
            self.classify_exception(error, phase),
            f"Unexpected error while checking {hostname}:{port} ({type(error).__name__}: {error})",
            unexpected=True
        )

    def handle_fetch_error(self, hostname: str, error: Exception) -> Dict[str, Any]:
        """
        处理证书获取错误

        Args:
            hostname: 主机名
            error: 异常对象

        Returns:
            Dict[str, Any]: 错误处理结果
        """
        kind = self.classify_exception(error)
        error_info = {
            'hostname': hostname,
            'error_kind': kind,
            'error_type': kind.value,
            'error_message': error.message if isinstance(error, FetchError) else str(error),
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'suggested_action': self.get_suggested_action(kind, error)
        }

        self.logger.warning(f"主机 {hostname} 证书获取失败 ({error_info['error_type']}): {error_info['error_message']}")

        return error_info

    def get_suggested_action(self, kind: ErrorKind, error: Optional[Exception] = None) -> str:
        """
        获取错误的诊断提示

        Args:
            kind: 错误类型
            error: 异常对象

        Returns:
            str: 诊断提示
        """
        if isinstance(error, FetchError) and error.unexpected:
            return UNEXPECTED_ERROR_HINT

        if kind is ErrorKind.TIMEOUT:
            return "check network connectivity or increase the timeout"
        elif kind is ErrorKind.DNS_OR_CONNECT_FAILURE:
            return CONNECTION_HINT
        elif kind is ErrorKind.TLS_HANDSHAKE_FAILURE:
            error_message = str(error).lower() if error else ""
            if 'wrong version number' in error_message:
                return "the port does not appear to speak TLS"
            return "check the server's SSL/TLS configuration and protocol compatibility"
        elif kind is ErrorKind.CERTIFICATE_PARSE_FAILURE:
            return "the server presented a certificate without a readable expiry date"
        else:
            return "fix the host entry in the configuration file"

    def get_error_statistics(self, error_list: List[Dict[str, Any]]) -> Dict[str, Any]:
        """
        获取错误统计信息

        Args:
            error_list: 错误信息列表

        Returns:
            Dict[str, Any]: 错误统计
        """
        if not error_list:
            return {
                'total_errors': 0,
                'error_types': {},
                'most_common_error': None,
                'most_common_error_count': 0
            }

        error_types = {}
        for error_info in error_list:
            error_type = error_info.get('error_type', 'Unknown')
            error_types[error_type] = error_types.get(error_type, 0) + 1

        most_common_error = max(error_types.items(), key=lambda x: x[1])

        return {
            'total_errors': len(error_list),
            'error_types': error_types,
            'most_common_error': most_common_error[0],
            'most_common_error_count': most_common_error[1]
        }
