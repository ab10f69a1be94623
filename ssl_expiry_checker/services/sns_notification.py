"""
SNS通知服务
"""
import os
from typing import List, Optional
import logging

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from ..interfaces import NotificationServiceInterface
from ..models import NotificationBatch, NotificationEntry, NotifyResult, NotifyStatus
from .webhook_notification import DEFAULT_OWNER, format_batch_text

# SNS Subject 最长100个字符
MAX_SUBJECT_LENGTH = 100


class SNSNotificationService(NotificationServiceInterface):
    """SNS通知服务实现"""

    channel = "SNS"

    def __init__(self, region_name: Optional[str] = None, sns_client=None):
        """
        初始化SNS通知服务

        Args:
            region_name: AWS区域名称，如果为None则从主题ARN或环境变量推断
            sns_client: 可选的boto3 SNS客户端
        """
        self.region_name = region_name
        self.sns_client = sns_client
        self.logger = logging.getLogger(__name__)

    def _get_client(self, topic_arn: str):
        """按主题ARN所在区域延迟创建SNS客户端"""
        if self.sns_client is None:
            region_name = self.region_name
            if not region_name and topic_arn.startswith('arn:aws:sns:'):
                # 从SNS ARN中提取区域
                region_name = topic_arn.split(':')[3]
            region_name = region_name or os.getenv('AWS_REGION', 'us-east-1')

            self.sns_client = boto3.client('sns', region_name=region_name)
            self.logger.info(f"SNS客户端初始化成功，区域: {region_name}")

        return self.sns_client

    def notify(self, target: Optional[str], batch: NotificationBatch,
               owner: Optional[str] = None) -> NotifyResult:
        """
        发布风险主机通知到SNS主题，只尝试一次

        Args:
            target: SNS主题ARN，为空时跳过
            batch: 通知批次
            owner: 负责人

        Returns:
            NotifyResult: SENT / SKIPPED / FAILED
        """
        if not target:
            return NotifyResult(NotifyStatus.SKIPPED, self.channel, detail="no SNS topic configured")

        if batch.is_empty:
            self.logger.info("没有即将过期的证书，跳过SNS通知")
            return NotifyResult(NotifyStatus.SKIPPED, self.channel, detail="no at-risk hosts")

        subject = self.format_subject(batch.entries)
        message = self.format_notification_content(batch, owner)

        try:
            client = self._get_client(target)
            response = client.publish(TopicArn=target, Subject=subject, Message=message)
        except ClientError as e:
            error_code = e.response['Error']['Code']
            error_message = e.response['Error']['Message']
            self.logger.error(f"SNS发送失败 - {error_code}: {error_message}")
            return NotifyResult(NotifyStatus.FAILED, self.channel, error=f"{error_code}: {error_message}")
        except BotoCoreError as e:
            self.logger.error(f"发送SNS通知时发生错误: {str(e)}")
            return NotifyResult(NotifyStatus.FAILED, self.channel, error=str(e))

        message_id = response.get('MessageId')
        self.logger.info(f"SNS通知发送成功，MessageId: {message_id}")
        return NotifyResult(NotifyStatus.SENT, self.channel, detail=f"MessageId {message_id}")

    def format_notification_content(self, batch: NotificationBatch, owner: Optional[str] = None) -> str:
        """
        格式化通知内容

        Args:
            batch: 通知批次
            owner: 负责人

        Returns:
            str: 纯文本通知内容
        """
        lines = [
            "SSL Certificate Expiration Alert",
            "=" * 32,
            f"Alert Time: {batch.generated_at.strftime('%Y-%m-%d %H:%M:%S %Z')}",
            f"Owner: {owner or batch.owner or DEFAULT_OWNER}",
            f"Total Certificates: {batch.total}",
            "",
            format_batch_text(batch).replace("**", "")
        ]
        return "\n".join(lines)

    def format_subject(self, entries: List[NotificationEntry]) -> str:
        """
        格式化通知主题

        Args:
            entries: 通知记录

        Returns:
            str: 主题
        """
        expired_count = len([e for e in entries if e.days_remaining <= 0])
        expiring_count = len(entries) - expired_count

        if expired_count and expiring_count:
            subject = f"🚨 SSL证书警报: {expired_count}个已过期, {expiring_count}个即将过期"
        elif expired_count:
            subject = f"🚨 SSL证书警报: {expired_count}个证书已过期"
        else:
            subject = f"⚠️ SSL证书提醒: {expiring_count}个证书即将过期"

        return subject[:MAX_SUBJECT_LENGTH]
