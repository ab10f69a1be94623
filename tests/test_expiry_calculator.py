"""
证书过期计算器测试
"""
import pytest
from datetime import datetime, timezone, timedelta

from ssl_expiry_checker.services.expiry_calculator import ExpiryCalculator
from ssl_expiry_checker.models import CertificateResult, ErrorKind, ExpiryState, HostEntry


NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_result(hostname, state=None, days=None, error_kind=None):
    return CertificateResult(
        host=HostEntry(hostname=hostname),
        expiry_date=NOW + timedelta(days=days) if days is not None else None,
        state=state,
        days_remaining=days,
        error_kind=error_kind,
        error_message="Connection failed" if error_kind else None
    )


class TestExpiryCalculator:
    """证书过期计算器测试类"""

    def setup_method(self):
        """测试前准备"""
        self.calculator = ExpiryCalculator(warning_days=30)

    def test_calculate_days_until_expiry_future(self):
        """测试计算未来过期时间"""
        assert self.calculator.calculate_days_until_expiry(NOW + timedelta(days=15), NOW) == 15

    def test_calculate_days_until_expiry_past(self):
        """测试计算过去过期时间"""
        assert self.calculator.calculate_days_until_expiry(NOW - timedelta(days=5), NOW) == -5

    def test_calculate_days_truncates_toward_zero(self):
        """测试天数向零截断"""
        assert self.calculator.calculate_days_until_expiry(NOW + timedelta(days=2, hours=23), NOW) == 2
        assert self.calculator.calculate_days_until_expiry(NOW - timedelta(days=2, hours=23), NOW) == -2
        assert self.calculator.calculate_days_until_expiry(NOW - timedelta(hours=12), NOW) == 0

    def test_calculate_days_defaults_to_current_time(self):
        """测试未指定当前时间时使用UTC当前时间"""
        future_date = datetime.now(timezone.utc) + timedelta(days=15, hours=1)
        assert self.calculator.calculate_days_until_expiry(future_date) == 15

    @pytest.mark.parametrize("delta,expected_state", [
        (timedelta(days=120), ExpiryState.VALID),
        (timedelta(days=31), ExpiryState.VALID),
        (timedelta(days=30), ExpiryState.EXPIRING_SOON),
        (timedelta(days=5), ExpiryState.EXPIRING_SOON),
        (timedelta(days=1), ExpiryState.EXPIRING_SOON),
        (timedelta(hours=23), ExpiryState.EXPIRED),
        (timedelta(0), ExpiryState.EXPIRED),
        (timedelta(days=-10), ExpiryState.EXPIRED),
    ])
    def test_classify_boundaries(self, delta, expected_state):
        """测试分类边界：30天为即将过期，31天为有效，当天为已过期"""
        classification = self.calculator.classify(NOW + delta, NOW)
        assert classification.state is expected_state

    def test_classify_returns_signed_days(self):
        """测试分类结果包含带符号的剩余天数"""
        assert self.calculator.classify(NOW - timedelta(days=10), NOW).days_remaining == -10
        assert self.calculator.classify(NOW + timedelta(days=5), NOW).days_remaining == 5

    def test_custom_warning_days(self):
        """测试自定义警告天数"""
        calculator = ExpiryCalculator(warning_days=7)

        assert calculator.classify(NOW + timedelta(days=15), NOW).state is ExpiryState.VALID
        assert calculator.classify(NOW + timedelta(days=7), NOW).state is ExpiryState.EXPIRING_SOON

    def test_categorize_certificates(self):
        """测试检查结果分类"""
        results = [
            make_result("expiring.com", ExpiryState.EXPIRING_SOON, 15),
            make_result("healthy.com", ExpiryState.VALID, 60),
            make_result("expired.com", ExpiryState.EXPIRED, -5),
            make_result("invalid.com", error_kind=ErrorKind.DNS_OR_CONNECT_FAILURE)
        ]

        categorized = self.calculator.categorize_certificates(results)

        assert [r.hostname for r in categorized['valid']] == ["healthy.com"]
        assert [r.hostname for r in categorized['expiring_soon']] == ["expiring.com"]
        assert [r.hostname for r in categorized['expired']] == ["expired.com"]
        assert [r.hostname for r in categorized['failed']] == ["invalid.com"]

    def test_get_expiry_summary(self):
        """测试获取过期状态摘要"""
        results = [
            make_result("expiring.com", ExpiryState.EXPIRING_SOON, 15),
            make_result("expired.com", ExpiryState.EXPIRED, -5),
            make_result("invalid.com", error_kind=ErrorKind.TIMEOUT)
        ]

        summary = self.calculator.get_expiry_summary(results)

        assert "0 valid" in summary
        assert "2 at risk (1 expiring within 30 days, 1 expired)" in summary
        assert "1 failed" in summary
