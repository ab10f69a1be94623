"""
数据模型定义
"""
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, List


class Priority(Enum):
    """主机优先级"""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNSET = "unset"


class ExpiryState(Enum):
    """证书过期状态"""
    VALID = "valid"
    EXPIRING_SOON = "expiring_soon"
    EXPIRED = "expired"


class ErrorKind(Enum):
    """单个主机检查失败的类型"""
    INVALID_HOST_ENTRY = "InvalidHostEntry"
    DNS_OR_CONNECT_FAILURE = "DnsOrConnectFailure"
    TLS_HANDSHAKE_FAILURE = "TlsHandshakeFailure"
    TIMEOUT = "Timeout"
    CERTIFICATE_PARSE_FAILURE = "CertificateParseFailure"


class RunOutcome(Enum):
    """一次批量检查的总体结果"""
    ALL_VALID = "all_valid"
    WARNINGS = "warnings"
    FAILED = "failed"

    @property
    def exit_code(self) -> int:
        return {
            RunOutcome.ALL_VALID: 0,
            RunOutcome.WARNINGS: 1,
            RunOutcome.FAILED: 2,
        }[self]


class NotifyStatus(Enum):
    """通知发送状态"""
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class HostEntry:
    """要检查的主机配置"""
    hostname: str
    description: Optional[str] = None
    category: Optional[str] = None
    priority: Priority = Priority.UNSET
    environment: Optional[str] = None


@dataclass(frozen=True)
class GlobalSettings:
    """一次运行内所有主机共享的全局设置"""
    webhook_url: Optional[str] = None
    owner: Optional[str] = None
    sns_topic_arn: Optional[str] = None


@dataclass(frozen=True)
class Classification:
    """证书分类结果"""
    state: ExpiryState
    days_remaining: int


@dataclass
class CertificateResult:
    """单个主机的证书检查结果"""
    host: HostEntry
    expiry_date: Optional[datetime] = None
    state: Optional[ExpiryState] = None
    days_remaining: Optional[int] = None
    formatted_expiry: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    error_message: Optional[str] = None
    suggested_action: Optional[str] = None

    @property
    def hostname(self) -> str:
        return self.host.hostname

    @property
    def is_valid(self) -> bool:
        """检查是否成功（与证书是否过期无关）"""
        return self.error_kind is None and self.state is not None

    @property
    def is_expiring_soon(self) -> bool:
        return self.state is ExpiryState.EXPIRING_SOON

    @property
    def is_expired(self) -> bool:
        return self.state is ExpiryState.EXPIRED

    @property
    def is_at_risk(self) -> bool:
        """即将过期或已过期"""
        return self.is_expiring_soon or self.is_expired


@dataclass(frozen=True)
class NotificationEntry:
    """通知批次中的一条记录"""
    hostname: str
    state: ExpiryState
    days_remaining: int
    formatted_expiry: str
    description: Optional[str] = None
    priority: Priority = Priority.UNSET
    environment: Optional[str] = None

    @classmethod
    def from_result(cls, result: CertificateResult) -> "NotificationEntry":
        return cls(
            hostname=result.hostname,
            state=result.state,
            days_remaining=result.days_remaining,
            formatted_expiry=result.formatted_expiry,
            description=result.host.description,
            priority=result.host.priority,
            environment=result.host.environment
        )


@dataclass
class NotificationBatch:
    """待发送的风险主机批次"""
    generated_at: datetime
    owner: Optional[str] = None
    entries: List[NotificationEntry] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.entries)

    @property
    def is_empty(self) -> bool:
        return not self.entries


@dataclass
class RunReport:
    """批量检查报告"""
    results: List[CertificateResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def valid_count(self) -> int:
        return len([r for r in self.results if r.state is ExpiryState.VALID])

    @property
    def expiring_soon_count(self) -> int:
        return len([r for r in self.results if r.is_expiring_soon])

    @property
    def expired_count(self) -> int:
        return len([r for r in self.results if r.is_expired])

    @property
    def failed_count(self) -> int:
        return len([r for r in self.results if not r.is_valid])

    @property
    def at_risk_count(self) -> int:
        return self.expiring_soon_count + self.expired_count

    @property
    def any_at_risk(self) -> bool:
        return self.at_risk_count > 0

    @property
    def outcome(self) -> RunOutcome:
        return RunOutcome.WARNINGS if self.any_at_risk else RunOutcome.ALL_VALID


@dataclass
class NotifyResult:
    """通知发送结果"""
    status: NotifyStatus
    channel: str
    error: Optional[str] = None
    detail: Optional[str] = None

    @property
    def sent(self) -> bool:
        return self.status is NotifyStatus.SENT


@dataclass
class RunSummary:
    """一次完整运行的结果"""
    outcome: RunOutcome
    report: RunReport
    batch: Optional[NotificationBatch] = None
    notifications: List[NotifyResult] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
    execution_time: float = 0.0
