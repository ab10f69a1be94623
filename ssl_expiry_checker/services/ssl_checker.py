"""
SSL证书获取服务
"""
import ssl
import socket
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeoutError
from datetime import datetime, timezone
from typing import List, Tuple
import logging

from cryptography import x509

from ..interfaces import CertificateFetcherInterface
from ..models import ErrorKind
from .error_handler import FetchError, FetchErrorHandler


EXPIRY_DISPLAY_FORMAT = '%a %b %d %H:%M:%S %Z %Y'


def format_expiry(expiry_date: datetime) -> str:
    """
    按 date(1) 的默认格式显示过期时间，例如 'Tue Dec 31 23:59:59 UTC 2024'

    Args:
        expiry_date: 过期时间

    Returns:
        str: 格式化后的过期时间
    """
    return expiry_date.astimezone(timezone.utc).strftime(EXPIRY_DISPLAY_FORMAT)


class CertificateFetcher(CertificateFetcherInterface):
    """
    证书获取器实现

    只读取叶子证书的 notAfter 字段，不做证书链、吊销或主机名校验。
    """

    def __init__(self):
        """初始化证书获取器"""
        self.logger = logging.getLogger(__name__)
        self.error_handler = FetchErrorHandler()

    def fetch(self, hostname: str, port: int = 443, timeout: float = 10) -> datetime:
        """
        获取主机叶子证书的过期时间

        Args:
            hostname: 主机名（同时作为SNI）
            port: TLS端口
            timeout: 连接、握手和读取证书的总超时时间（秒）

        Returns:
            datetime: UTC过期时间

        Raises:
            FetchError: 连接、握手、超时或证书解析失败
        """
        hostname = hostname.strip()
        der_cert = self._get_peer_certificate(hostname, port, timeout)

        try:
            return self._parse_expiry_date(der_cert)
        except FetchError:
            raise
        except Exception as e:
            raise self.error_handler.to_fetch_error(hostname, port, e, phase="parse")

    def _create_context(self) -> ssl.SSLContext:
        """创建不校验证书的TLS上下文"""
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_CLIENT)
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
        return context

    def _get_peer_certificate(self, hostname: str, port: int, timeout: float) -> bytes:
        """
        建立TLS连接并读取DER格式的叶子证书

        Args:
            hostname: 主机名
            port: 端口
            timeout: 总超时时间（秒）

        Returns:
            bytes: DER编码的证书

        Raises:
            FetchError: 连接或握手失败
        """
        deadline = time.monotonic() + timeout
        context = self._create_context()

        addresses = self._resolve(hostname, port, deadline)
        sock = self._connect(hostname, port, addresses, deadline)

        with sock:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise FetchError(ErrorKind.TIMEOUT, f"Timed out while connecting to {hostname}:{port}")
            sock.settimeout(remaining)

            try:
                with context.wrap_socket(sock, server_hostname=hostname) as ssock:
                    der_cert = ssock.getpeercert(binary_form=True)
            except Exception as e:
                raise self.error_handler.to_fetch_error(hostname, port, e, phase="handshake")

        if not der_cert:
            raise FetchError(
                ErrorKind.CERTIFICATE_PARSE_FAILURE,
                f"{hostname}:{port} did not present a certificate"
            )

        self.logger.debug(f"已获取主机 {hostname}:{port} 的叶子证书（{len(der_cert)} 字节）")
        return der_cert

    def _resolve(self, hostname: str, port: int, deadline: float) -> List[Tuple]:
        """
        在剩余预算内解析主机地址

        getaddrinfo 本身不支持超时，放到单独的线程中执行，超过预算即放弃等待。

        Raises:
            FetchError: 解析失败或超时
        """
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(socket.getaddrinfo, hostname, port, 0, socket.SOCK_STREAM)
        executor.shutdown(wait=False)

        try:
            return future.result(timeout=max(deadline - time.monotonic(), 0))
        except FutureTimeoutError:
            future.cancel()
            raise FetchError(ErrorKind.TIMEOUT, f"Timed out while resolving {hostname}")
        except Exception as e:
            raise self.error_handler.to_fetch_error(hostname, port, e, phase="connect")

    def _connect(self, hostname: str, port: int, addresses: List[Tuple], deadline: float) -> socket.socket:
        """
        依次尝试解析出的地址，每次连接只使用剩余的预算

        Raises:
            FetchError: 所有地址都连接失败，或预算耗尽
        """
        last_error = None

        for family, socktype, proto, _, sockaddr in addresses:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break

            try:
                sock = socket.socket(family, socktype, proto)
            except OSError as e:
                last_error = e
                continue

            try:
                sock.settimeout(remaining)
                sock.connect(sockaddr)
                return sock
            except OSError as e:
                sock.close()
                last_error = e
                self.logger.debug(f"连接 {hostname} 的地址 {sockaddr} 失败: {e}")

        if last_error is not None and time.monotonic() < deadline:
            raise self.error_handler.to_fetch_error(hostname, port, last_error, phase="connect")

        raise FetchError(ErrorKind.TIMEOUT, f"Timed out while connecting to {hostname}:{port}")

    def _parse_expiry_date(self, der_cert: bytes) -> datetime:
        """
        解析证书过期时间

        Args:
            der_cert: DER编码的证书

        Returns:
            datetime: UTC过期时间
        """
        cert = x509.load_der_x509_certificate(der_cert)
        expiry_date = cert.not_valid_after_utc

        if expiry_date is None:
            raise FetchError(ErrorKind.CERTIFICATE_PARSE_FAILURE, "证书中未找到过期时间信息")

        return expiry_date
