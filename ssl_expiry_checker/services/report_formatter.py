"""
文本报告渲染服务
"""
import os
import sys
from typing import List, Optional, TextIO

from ..models import CertificateResult, NotifyResult, NotifyStatus, Priority, RunReport
from .expiry_calculator import ExpiryCalculator

RED = '\033[0;31m'
GREEN = '\033[0;32m'
YELLOW = '\033[1;33m'
BLUE = '\033[0;34m'
NC = '\033[0m'

PRIORITY_COLORS = {
    Priority.HIGH: RED,
    Priority.MEDIUM: YELLOW,
    Priority.LOW: GREEN,
}


def colors_enabled(stream: Optional[TextIO] = None) -> bool:
    """流水线（CI_COMMIT_BRANCH）、NO_COLOR 或非终端输出时关闭颜色"""
    if os.getenv('NO_COLOR') or os.getenv('CI_COMMIT_BRANCH'):
        return False
    stream = stream or sys.stdout
    return hasattr(stream, 'isatty') and stream.isatty()


class ReportFormatter:
    """把检查结果渲染成带颜色的文本报告"""

    def __init__(self, use_color: bool = True, calculator: Optional[ExpiryCalculator] = None):
        self.use_color = use_color
        self.calculator = calculator or ExpiryCalculator()

    def _c(self, color: str, text: str) -> str:
        if not self.use_color:
            return text
        return f"{color}{text}{NC}"

    def format_header(self, source: str, port: int, timeout: float) -> str:
        return "\n".join([
            self._c(BLUE, "SSL Certificate Expiration Checker"),
            self._c(BLUE, "==================================="),
            f"JSON file: {source}",
            f"Port: {port}",
            f"Timeout: {timeout}s",
            ""
        ])

    def format_result(self, result: CertificateResult) -> str:
        """
        渲染单个主机的结果，失败的主机同样输出一段

        Args:
            result: 检查结果

        Returns:
            str: 多行文本
        """
        host = result.host
        lines = [self._c(BLUE, f"Checking SSL certificate for: {host.hostname or '<empty>'}")]

        if host.description:
            lines.append("  " + self._c(BLUE, f"Description: {host.description}"))
        if host.category:
            lines.append("  " + self._c(BLUE, f"Category: {host.category}"))
        if host.priority is not Priority.UNSET:
            color = PRIORITY_COLORS.get(host.priority, BLUE)
            lines.append("  " + self._c(color, f"Priority: {host.priority.value}"))
        if host.environment:
            lines.append("  " + self._c(BLUE, f"Environment: {host.environment}"))

        if not result.is_valid:
            lines.append("  " + self._c(RED, f"Error: {result.error_message}"))
            if result.suggested_action:
                lines.append("  " + self._c(RED, f"  Hint: {result.suggested_action}"))
        elif result.is_expired:
            lines.append("  " + self._c(RED, f"✗ Certificate expired: {result.formatted_expiry}"))
            lines.append("  " + self._c(RED, f"  Days expired: {abs(result.days_remaining)}"))
        elif result.is_expiring_soon:
            lines.append("  " + self._c(YELLOW, f"⚠ Certificate expires: {result.formatted_expiry}"))
            lines.append("  " + self._c(YELLOW, f"  Days remaining: {result.days_remaining} (WARNING: Expires soon!)"))
        else:
            lines.append("  " + self._c(GREEN, f"✓ Certificate expires: {result.formatted_expiry}"))
            lines.append("  " + self._c(GREEN, f"  Days remaining: {result.days_remaining}"))

        return "\n".join(lines)

    def format_summary(self, report: RunReport) -> str:
        """
        渲染结尾摘要：处理数量以及有效/风险/失败分布

        Args:
            report: 检查报告

        Returns:
            str: 摘要文本
        """
        lines = [
            self._c(BLUE, f"Checked {report.processed} hostname(s)"),
            self.calculator.get_expiry_summary(report.results)
        ]

        if report.any_at_risk:
            lines.append(self._c(
                YELLOW,
                f"⚠️  Found certificates expired or expiring within {self.calculator.warning_days} days!"
            ))
        elif report.failed_count:
            lines.append(self._c(YELLOW, "No expiring certificates found, but some hosts could not be checked"))
        else:
            lines.append(self._c(
                GREEN,
                f"✓ All certificates are valid for more than {self.calculator.warning_days} days"
            ))

        return "\n".join(lines)

    def format_error(self, message: str) -> str:
        return self._c(RED, f"Error: {message}")

    def format_notification(self, result: NotifyResult) -> str:
        if result.status is NotifyStatus.SENT:
            return self._c(GREEN, f"✓ {result.channel} notification sent successfully")
        elif result.status is NotifyStatus.SKIPPED:
            return self._c(YELLOW, f"{result.channel} notification skipped: {result.detail}")
        return self._c(RED, f"✗ Failed to send {result.channel} notification: {result.error}")

    def format_report(self, report: RunReport, notifications: Optional[List[NotifyResult]] = None) -> str:
        """渲染完整报告"""
        sections = [self.format_result(result) + "\n" for result in report.results]
        sections.append(self.format_summary(report))
        for notification in notifications or []:
            sections.append(self.format_notification(notification))
        return "\n".join(sections)
