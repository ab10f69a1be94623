"""
SNS通知服务测试
"""
import pytest
import boto3
from unittest.mock import patch, MagicMock
from datetime import datetime, timezone
from botocore.exceptions import ClientError, EndpointConnectionError
from moto import mock_aws

from ssl_expiry_checker.services.sns_notification import SNSNotificationService
from ssl_expiry_checker.models import (
    ExpiryState,
    NotificationBatch,
    NotificationEntry,
    NotifyStatus,
)


GENERATED_AT = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def expired_entry(hostname="gone.example"):
    return NotificationEntry(
        hostname=hostname,
        state=ExpiryState.EXPIRED,
        days_remaining=-10,
        formatted_expiry="Wed May 22 12:00:00 UTC 2024"
    )


def expiring_entry(hostname="soon.example"):
    return NotificationEntry(
        hostname=hostname,
        state=ExpiryState.EXPIRING_SOON,
        days_remaining=5,
        formatted_expiry="Thu Jun 06 12:00:00 UTC 2024",
        description="Shop"
    )


class TestSNSNotificationService:
    """SNS通知服务测试类"""

    def setup_method(self):
        """测试前准备"""
        self.topic_arn = "arn:aws:sns:us-east-1:123456789012:ssl-alerts"
        self.batch = NotificationBatch(
            generated_at=GENERATED_AT,
            owner="Platform team",
            entries=[expiring_entry(), expired_entry()]
        )

    @patch('ssl_expiry_checker.services.sns_notification.boto3')
    def test_client_region_from_arn(self, mock_boto3):
        """测试从主题ARN推断区域"""
        service = SNSNotificationService()

        service._get_client("arn:aws:sns:eu-west-1:123456789012:ssl-alerts")

        mock_boto3.client.assert_called_once_with('sns', region_name='eu-west-1')

    @patch('ssl_expiry_checker.services.sns_notification.boto3')
    def test_client_explicit_region(self, mock_boto3):
        """测试指定区域优先"""
        service = SNSNotificationService(region_name='us-west-2')

        service._get_client(self.topic_arn)

        mock_boto3.client.assert_called_once_with('sns', region_name='us-west-2')

    def test_skipped_without_topic(self):
        """测试未配置主题时跳过"""
        client = MagicMock()
        service = SNSNotificationService(sns_client=client)

        result = service.notify(None, self.batch)

        assert result.status is NotifyStatus.SKIPPED
        client.publish.assert_not_called()

    def test_skipped_with_empty_batch(self):
        """测试空批次时跳过"""
        client = MagicMock()
        service = SNSNotificationService(sns_client=client)

        result = service.notify(self.topic_arn, NotificationBatch(generated_at=GENERATED_AT))

        assert result.status is NotifyStatus.SKIPPED
        client.publish.assert_not_called()

    @mock_aws
    def test_publish_success(self):
        """测试发布到SNS主题成功"""
        sns = boto3.client('sns', region_name='us-east-1')
        topic_arn = sns.create_topic(Name='ssl-alerts')['TopicArn']
        service = SNSNotificationService(region_name='us-east-1')

        result = service.notify(topic_arn, self.batch)

        assert result.status is NotifyStatus.SENT
        assert result.channel == "SNS"
        assert result.detail.startswith("MessageId ")

    def test_publish_arguments(self):
        """测试发布参数"""
        client = MagicMock()
        client.publish.return_value = {'MessageId': 'test-message-id'}
        service = SNSNotificationService(sns_client=client)

        result = service.notify(self.topic_arn, self.batch)

        assert result.sent is True
        client.publish.assert_called_once()
        kwargs = client.publish.call_args.kwargs
        assert kwargs['TopicArn'] == self.topic_arn
        assert kwargs['Subject'] == "🚨 SSL证书警报: 1个已过期, 1个即将过期"
        assert "soon.example" in kwargs['Message']
        assert "**" not in kwargs['Message']

    def test_client_error_fails_once(self):
        """测试SNS客户端错误视为发送失败且不重试"""
        client = MagicMock()
        client.publish.side_effect = ClientError(
            {'Error': {'Code': 'NotFound', 'Message': 'Topic not found'}},
            'Publish'
        )
        service = SNSNotificationService(sns_client=client)

        result = service.notify(self.topic_arn, self.batch)

        assert result.status is NotifyStatus.FAILED
        assert result.error == "NotFound: Topic not found"
        assert client.publish.call_count == 1

    def test_botocore_error_fails(self):
        """测试连接错误视为发送失败"""
        client = MagicMock()
        client.publish.side_effect = EndpointConnectionError(endpoint_url="https://sns.us-east-1.amazonaws.com")
        service = SNSNotificationService(sns_client=client)

        result = service.notify(self.topic_arn, self.batch)

        assert result.status is NotifyStatus.FAILED
        assert "sns.us-east-1.amazonaws.com" in result.error

    def test_format_notification_content(self):
        """测试通知内容"""
        service = SNSNotificationService(sns_client=MagicMock())

        content = service.format_notification_content(self.batch)

        assert "SSL Certificate Expiration Alert" in content
        assert "Owner: Platform team" in content
        assert "Total Certificates: 2" in content
        assert "⚠️ Expires in 5 days" in content
        assert "❌ EXPIRED 10 days ago" in content

    def test_format_notification_content_default_owner(self):
        """测试未设置负责人时的通知内容"""
        service = SNSNotificationService(sns_client=MagicMock())
        batch = NotificationBatch(generated_at=GENERATED_AT, entries=[expired_entry()])

        assert "Owner: Not specified" in service.format_notification_content(batch)

    @pytest.mark.parametrize("entries,expected", [
        ([expired_entry()], "🚨 SSL证书警报: 1个证书已过期"),
        ([expiring_entry(), expiring_entry("b.example")], "⚠️ SSL证书提醒: 2个证书即将过期"),
        ([expired_entry(), expiring_entry()], "🚨 SSL证书警报: 1个已过期, 1个即将过期"),
    ])
    def test_format_subject(self, entries, expected):
        """测试通知主题"""
        service = SNSNotificationService(sns_client=MagicMock())
        assert service.format_subject(entries) == expected
