"""
证书过期计算服务
"""
from datetime import datetime, timezone
from typing import Dict, List, Optional
from ..models import CertificateResult, Classification, ExpiryState


SECONDS_PER_DAY = 86400


class ExpiryCalculator:
    """证书过期计算器"""

    def __init__(self, warning_days: int = 30):
        """
        初始化过期计算器

        Args:
            warning_days: 提前警告天数，默认30天
        """
        self.warning_days = warning_days

    def calculate_days_until_expiry(self, expiry_date: datetime, now: Optional[datetime] = None) -> int:
        """
        计算距离过期的天数

        以整秒差值除以86400，向零截断（-0.5天记为0天）。

        Args:
            expiry_date: 过期时间
            now: 当前时间，默认取UTC当前时间

        Returns:
            int: 剩余天数（0或负数表示已过期）
        """
        now = now or datetime.now(timezone.utc)
        seconds = int((expiry_date - now).total_seconds())
        days = abs(seconds) // SECONDS_PER_DAY
        return days if seconds >= 0 else -days

    def classify(self, expiry_date: datetime, now: Optional[datetime] = None) -> Classification:
        """
        对证书过期时间进行分类

        Args:
            expiry_date: 过期时间
            now: 当前时间

        Returns:
            Classification: 状态和剩余天数
        """
        days = self.calculate_days_until_expiry(expiry_date, now)

        if days > self.warning_days:
            state = ExpiryState.VALID
        elif days > 0:
            state = ExpiryState.EXPIRING_SOON
        else:
            state = ExpiryState.EXPIRED

        return Classification(state=state, days_remaining=days)

    def categorize_certificates(self, results: List[CertificateResult]) -> Dict[str, List[CertificateResult]]:
        """
        对检查结果进行分类

        Args:
            results: 检查结果列表

        Returns:
            dict: 分类结果
        """
        return {
            'valid': [r for r in results if r.state is ExpiryState.VALID],
            'expiring_soon': [r for r in results if r.is_expiring_soon],
            'expired': [r for r in results if r.is_expired],
            'failed': [r for r in results if not r.is_valid]
        }

    def get_expiry_summary(self, results: List[CertificateResult]) -> str:
        """
        获取过期状态摘要

        Args:
            results: 检查结果列表

        Returns:
            str: 摘要信息
        """
        categorized = self.categorize_certificates(results)
        at_risk = len(categorized['expiring_soon']) + len(categorized['expired'])

        summary_parts = [
            f"{len(categorized['valid'])} valid",
            f"{at_risk} at risk ({len(categorized['expiring_soon'])} expiring within "
            f"{self.warning_days} days, {len(categorized['expired'])} expired)",
            f"{len(categorized['failed'])} failed"
        ]

        return ", ".join(summary_parts)
