"""
Webhook通知服务
"""
from typing import Any, Dict, List, Optional
import logging

import requests

from ..interfaces import NotificationServiceInterface
from ..models import ExpiryState, NotificationBatch, NotificationEntry, NotifyResult, NotifyStatus, Priority
from .error_handler import NotifyError


DEFAULT_OWNER = "Not specified"
ALERT_TITLE = "🚨 SSL Certificate Expiration Alert"


def format_notification_entry(entry: NotificationEntry) -> str:
    """
    格式化单条风险主机记录（Markdown）

    Args:
        entry: 通知记录

    Returns:
        str: 多行文本，例如::

            • **example.com** - Main site
              - ⚠️ Expires in 5 days (Tue Dec 31 23:59:59 UTC 2024)
              - Priority: high
    """
    line = f"• **{entry.hostname}**"
    if entry.description:
        line += f" - {entry.description}"
    lines = [line]

    if entry.state is ExpiryState.EXPIRED:
        lines.append(f"  - ❌ EXPIRED {abs(entry.days_remaining)} days ago ({entry.formatted_expiry})")
    else:
        lines.append(f"  - ⚠️ Expires in {entry.days_remaining} days ({entry.formatted_expiry})")

    if entry.priority is not Priority.UNSET:
        lines.append(f"  - Priority: {entry.priority.value}")
    if entry.environment:
        lines.append(f"  - Environment: {entry.environment}")

    return "\n".join(lines)


def format_batch_text(batch: NotificationBatch) -> str:
    """将整个批次格式化为以空行分隔的文本"""
    return "\n\n".join(format_notification_entry(entry) for entry in batch.entries)


class WebhookNotificationService(NotificationServiceInterface):
    """Webhook通知服务实现（Microsoft Teams MessageCard格式）"""

    channel = "Webhook"

    def __init__(self, timeout: float = 10, session: Optional[requests.Session] = None,
                 warning_days: int = 30):
        """
        初始化Webhook通知服务

        Args:
            timeout: HTTP请求超时时间（秒）
            session: 可选的requests会话
            warning_days: 提前警告天数，写入消息副标题
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self.warning_days = warning_days
        self.logger = logging.getLogger(__name__)

    def notify(self, target: Optional[str], batch: NotificationBatch,
               owner: Optional[str] = None) -> NotifyResult:
        """
        发送风险主机通知，只尝试一次

        Args:
            target: Webhook地址，为空时跳过
            batch: 通知批次
            owner: 负责人，为空时使用批次中的负责人

        Returns:
            NotifyResult: SENT / SKIPPED / FAILED
        """
        if not target:
            self.logger.warning("未配置Webhook地址，跳过通知发送")
            return NotifyResult(NotifyStatus.SKIPPED, self.channel, detail="no webhook URL configured")

        if batch.is_empty:
            self.logger.info("没有即将过期的证书，跳过通知发送")
            return NotifyResult(NotifyStatus.SKIPPED, self.channel, detail="no at-risk hosts")

        payload = self.build_payload(batch, owner)

        try:
            status_code = self._post(target, payload)
        except NotifyError as e:
            self.logger.error(f"Webhook通知发送失败: {e}")
            return NotifyResult(NotifyStatus.FAILED, self.channel, error=str(e))

        self.logger.info(f"Webhook通知发送成功，HTTP {status_code}")
        return NotifyResult(NotifyStatus.SENT, self.channel, detail=f"HTTP {status_code}")

    def build_payload(self, batch: NotificationBatch, owner: Optional[str] = None) -> Dict[str, Any]:
        """
        构建MessageCard载荷

        Args:
            batch: 通知批次
            owner: 负责人

        Returns:
            Dict[str, Any]: JSON载荷
        """
        owner = owner or batch.owner or DEFAULT_OWNER
        facts: List[Dict[str, str]] = [
            {"name": "Alert Time", "value": batch.generated_at.strftime('%a %b %d %H:%M:%S %Z %Y')},
            {"name": "Owner", "value": owner},
            {"name": "Total Certificates", "value": str(batch.total)}
        ]

        return {
            "@type": "MessageCard",
            "@context": "http://schema.org/extensions",
            "themeColor": "FF6B6B",
            "summary": "SSL Certificate Expiration Alert",
            "sections": [{
                "activityTitle": ALERT_TITLE,
                "activitySubtitle": (
                    f"The following certificates are expired or expiring within {self.warning_days} days"
                ),
                "facts": facts,
                "text": f"**Expiring Certificates:**\n\n{format_batch_text(batch)}",
                "markdown": True
            }]
        }

    def _post(self, url: str, payload: Dict[str, Any]) -> int:
        """
        发送HTTP POST请求

        Raises:
            NotifyError: 网络错误或非2xx响应
        """
        try:
            response = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise NotifyError(f"webhook unreachable: {e}") from e

        if not 200 <= response.status_code < 300:
            raise NotifyError(
                f"webhook returned HTTP {response.status_code}: {response.text[:200]}",
                status_code=response.status_code
            )

        return response.status_code
