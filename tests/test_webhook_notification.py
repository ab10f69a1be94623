"""
Webhook通知服务测试
"""
import pytest
import requests
from unittest.mock import MagicMock
from datetime import datetime, timezone

from ssl_expiry_checker.services.webhook_notification import (
    WebhookNotificationService,
    format_batch_text,
    format_notification_entry,
)
from ssl_expiry_checker.models import (
    ExpiryState,
    NotificationBatch,
    NotificationEntry,
    NotifyStatus,
    Priority,
)


GENERATED_AT = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)
WEBHOOK_URL = "https://outlook.office.com/webhook/abc"


def make_batch(owner=None):
    return NotificationBatch(
        generated_at=GENERATED_AT,
        owner=owner,
        entries=[
            NotificationEntry(
                hostname="soon.example",
                state=ExpiryState.EXPIRING_SOON,
                days_remaining=5,
                formatted_expiry="Thu Jun 06 12:00:00 UTC 2024",
                description="Shop",
                priority=Priority.HIGH,
                environment="prod"
            ),
            NotificationEntry(
                hostname="gone.example",
                state=ExpiryState.EXPIRED,
                days_remaining=-10,
                formatted_expiry="Wed May 22 12:00:00 UTC 2024"
            )
        ]
    )


class TestFormatting:
    """通知内容格式化测试类"""

    def test_format_expiring_entry(self):
        """测试即将过期记录的格式"""
        text = format_notification_entry(make_batch().entries[0])

        assert text == (
            "• **soon.example** - Shop\n"
            "  - ⚠️ Expires in 5 days (Thu Jun 06 12:00:00 UTC 2024)\n"
            "  - Priority: high\n"
            "  - Environment: prod"
        )

    def test_format_expired_entry(self):
        """测试已过期记录的格式（不含未设置的元数据）"""
        text = format_notification_entry(make_batch().entries[1])

        assert text == (
            "• **gone.example**\n"
            "  - ❌ EXPIRED 10 days ago (Wed May 22 12:00:00 UTC 2024)"
        )

    def test_format_same_day_expiry(self):
        """测试当天过期显示为已过期0天"""
        entry = NotificationEntry(
            hostname="today.example",
            state=ExpiryState.EXPIRED,
            days_remaining=0,
            formatted_expiry="Sat Jun 01 18:00:00 UTC 2024"
        )
        assert "❌ EXPIRED 0 days ago" in format_notification_entry(entry)

    def test_format_batch_text_keeps_order(self):
        """测试批次文本按顺序以空行分隔"""
        text = format_batch_text(make_batch())

        blocks = text.split("\n\n")
        assert len(blocks) == 2
        assert blocks[0].startswith("• **soon.example**")
        assert blocks[1].startswith("• **gone.example**")


class TestWebhookNotificationService:
    """Webhook通知服务测试类"""

    def setup_method(self):
        """测试前准备"""
        self.session = MagicMock()
        self.session.post.return_value = MagicMock(status_code=200, text="1")
        self.service = WebhookNotificationService(timeout=5, session=self.session)

    def test_skipped_without_url(self):
        """测试未配置地址时跳过"""
        for url in (None, ""):
            result = self.service.notify(url, make_batch())

            assert result.status is NotifyStatus.SKIPPED
            assert result.error is None

        self.session.post.assert_not_called()

    def test_skipped_with_empty_batch(self):
        """测试空批次时跳过"""
        result = self.service.notify(WEBHOOK_URL, NotificationBatch(generated_at=GENERATED_AT))

        assert result.status is NotifyStatus.SKIPPED
        self.session.post.assert_not_called()

    def test_sent(self):
        """测试发送成功"""
        result = self.service.notify(WEBHOOK_URL, make_batch(), "Platform team")

        assert result.status is NotifyStatus.SENT
        assert result.sent is True
        assert result.channel == "Webhook"
        self.session.post.assert_called_once()
        args, kwargs = self.session.post.call_args
        assert args == (WEBHOOK_URL,)
        assert kwargs['timeout'] == 5
        assert kwargs['json']['sections'][0]['activityTitle'] == "🚨 SSL Certificate Expiration Alert"

    def test_payload_facts(self):
        """测试载荷包含告警时间、负责人和数量"""
        payload = self.service.build_payload(make_batch(), "Platform team")

        section = payload['sections'][0]
        facts = {fact['name']: fact['value'] for fact in section['facts']}
        assert payload['@type'] == "MessageCard"
        assert facts['Alert Time'] == "Sat Jun 01 12:00:00 UTC 2024"
        assert facts['Owner'] == "Platform team"
        assert facts['Total Certificates'] == "2"
        assert "soon.example" in section['text']
        assert "gone.example" in section['text']
        assert section['text'].index("soon.example") < section['text'].index("gone.example")

    def test_payload_subtitle_uses_warning_days(self):
        """测试消息副标题使用配置的警告天数"""
        default_section = self.service.build_payload(make_batch())['sections'][0]
        assert default_section['activitySubtitle'].endswith("within 30 days")

        service = WebhookNotificationService(session=self.session, warning_days=7)
        section = service.build_payload(make_batch())['sections'][0]

        assert section['activitySubtitle'] == "The following certificates are expired or expiring within 7 days"

    def test_payload_owner_defaults(self):
        """测试未设置负责人时显示默认值"""
        facts = self.service.build_payload(make_batch())['sections'][0]['facts']
        assert {'name': 'Owner', 'value': 'Not specified'} in facts

    def test_payload_owner_from_batch(self):
        """测试使用批次中的负责人"""
        facts = self.service.build_payload(make_batch(owner="Batch owner"))['sections'][0]['facts']
        assert {'name': 'Owner', 'value': 'Batch owner'} in facts

    @pytest.mark.parametrize("status_code", [400, 404, 500, 302])
    def test_non_2xx_response_fails(self, status_code):
        """测试非2xx响应视为发送失败"""
        self.session.post.return_value = MagicMock(status_code=status_code, text="Bad request")

        result = self.service.notify(WEBHOOK_URL, make_batch())

        assert result.status is NotifyStatus.FAILED
        assert f"HTTP {status_code}" in result.error

    def test_network_error_fails(self):
        """测试网络错误视为发送失败且只尝试一次"""
        self.session.post.side_effect = requests.ConnectionError("Connection refused")

        result = self.service.notify(WEBHOOK_URL, make_batch())

        assert result.status is NotifyStatus.FAILED
        assert "webhook unreachable" in result.error
        assert self.session.post.call_count == 1

    def test_timeout_fails(self):
        """测试请求超时视为发送失败"""
        self.session.post.side_effect = requests.Timeout("read timed out")

        result = self.service.notify(WEBHOOK_URL, make_batch())

        assert result.status is NotifyStatus.FAILED
