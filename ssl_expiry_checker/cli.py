"""
命令行入口
"""
import argparse
import os
import sys
from typing import List, Optional

from .models import RunOutcome
from .monitor import CertificateExpiryMonitor
from .services.logger import LoggerService
from .services.report_formatter import ReportFormatter, colors_enabled


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='ssl-expiry-checker',
        description='Check SSL certificate expiration dates for the hostnames listed in a JSON file.',
        epilog=(
            'JSON file format: an array of objects with a "hostname" field, or an object with '
            '"teams_url", "owner" and a "hostnames" array. Example: '
            '[{"hostname": "example.com", "description": "Main site"}, {"hostname": "api.example.com"}]'
        )
    )
    parser.add_argument('json_file', help='JSON file containing the hostnames to check')
    parser.add_argument('-p', '--port', type=int, default=443, help='port number (default: 443)')
    parser.add_argument('-t', '--timeout', type=int, default=10, help='timeout in seconds (default: 10)')
    parser.add_argument('-w', '--workers', type=int, default=1,
                        help='number of hosts checked concurrently (default: 1)')
    parser.add_argument('--warning-days', type=int, default=30,
                        help='warn when a certificate expires within this many days (default: 30)')
    parser.add_argument('--no-color', action='store_true', help='disable coloured output')
    parser.add_argument('--log-level', default=os.getenv('LOG_LEVEL', 'WARNING'),
                        help='log level (default: LOG_LEVEL or WARNING)')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    运行检查并返回退出码：0 全部有效，1 存在即将过期/已过期证书，2 配置错误

    Args:
        argv: 命令行参数

    Returns:
        int: 退出码
    """
    args = build_parser().parse_args(argv)

    formatter = ReportFormatter(use_color=not args.no_color and colors_enabled(sys.stdout))
    monitor = CertificateExpiryMonitor(
        port=args.port,
        timeout=args.timeout,
        warning_days=args.warning_days,
        max_workers=args.workers,
        logger_service=LoggerService(log_level=args.log_level)
    )
    formatter.calculator = monitor.expiry_calculator

    print(formatter.format_header(args.json_file, args.port, args.timeout))

    summary = monitor.execute_from_file(args.json_file, {
        'webhook_url': os.getenv('WEBHOOK_URL'),
        'owner': os.getenv('OWNER'),
        'sns_topic_arn': os.getenv('SNS_TOPIC_ARN')
    })

    if summary.outcome is RunOutcome.FAILED:
        for error in summary.errors:
            print(formatter.format_error(error), file=sys.stderr)
        return summary.outcome.exit_code

    print(formatter.format_report(summary.report, summary.notifications))
    return summary.outcome.exit_code


if __name__ == '__main__':
    sys.exit(main())
