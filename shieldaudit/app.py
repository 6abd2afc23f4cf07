"""Command line entrypoint.

Exit codes:
  0  audit completed (with or without recoverable warnings), or a usage
     error (conflicting flags) reported before any API call
  1  audit aborted, configuration/credentials unusable, or output could
     not be written
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from shieldaudit.auditor.assemble import resolve_mode
from shieldaudit.auditor.output.console import print_report
from shieldaudit.auditor.output.writer import OutputWriter
from shieldaudit.auditor.papi.client import PapiClient
from shieldaudit.auditor.runner import AuditRunner
from shieldaudit.util.concurrency import RateLimiter
from shieldaudit.util.config import load_config
from shieldaudit.util.errors import AuditAbortedError, ConfigError, UsageError
from shieldaudit.util.log import get_logger, setup_logging

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 0  # usage errors are reported, not fatal


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='siteshield-audit',
        description='Audit which active properties are protected by a SiteShield map',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  siteshield-audit
  siteshield-audit --show-unprotected --csv exposed.csv
  siteshield-audit --map s123.akamaiedge.net --staging
  siteshield-audit --section prod --account-key 1-ABCDE --workers 8 --excel
        """
    )
    # store_true flags default to None so unset flags don't mask .env values
    parser.add_argument('--map', dest='map_name', help='Audit a single shield map (protected-only output)')
    parser.add_argument('--show-protected', action='store_true', default=None, help='Show protected properties only')
    parser.add_argument('--show-unprotected', action='store_true', default=None, help='Show unprotected properties only')
    parser.add_argument('--staging', action='store_true', default=None, help='Use staging activation status instead of production')

    creds = parser.add_argument_group('credentials')
    creds.add_argument('--edgerc', dest='edgerc_path', help='Path to .edgerc (default: ~/.edgerc)')
    creds.add_argument('--section', help='Section of .edgerc to use (default: default)')
    creds.add_argument('--account-key', dest='account_switch_key', help='Account switch key')

    tuning = parser.add_argument_group('tuning')
    tuning.add_argument('--workers', dest='max_workers', type=int, help='Concurrent hostname lookups (default: 4)')
    tuning.add_argument('--rate-limit', dest='rate_limit_delay', type=float, help='Seconds between API calls (global)')
    tuning.add_argument('--timeout', dest='http_timeout', type=float, help='Per-request timeout in seconds')
    tuning.add_argument('--universe-match', help='JSONPath defining "all active properties" (default: has a cpCode)')

    out = parser.add_argument_group('output')
    out.add_argument('--out-dir', help='Base directory for run output (default: out)')
    out.add_argument('--csv', dest='csv_path', help='Write flat CSV to this file instead of the run directory')
    out.add_argument('--json', dest='json_path', help='Write nested JSON to this file instead of the run directory')
    out.add_argument('--excel', dest='enable_excel', action='store_true', default=None, help='Also write an Excel workbook')
    out.add_argument('--no-progress', dest='show_progress', action='store_false', default=None, help='Disable progress bars')
    out.add_argument('--log-file', help='Also log to this file')
    out.add_argument('--verbose', '-v', action='store_true', help='Debug logging')
    return parser


def write_outputs(report, config) -> None:
    writer = OutputWriter(out_dir=config.out_dir)
    if config.csv_path or config.json_path:
        if config.csv_path:
            writer.write_csv(report, Path(config.csv_path))
        if config.json_path:
            writer.write_json(report, Path(config.json_path))
        if config.enable_excel:
            writer.write_excel(report, writer.run_dir / "siteshield_audit.xlsx")
        return
    writer.write_all(report, enable_excel=config.enable_excel)


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(Path(args.log_file) if args.log_file else None, verbose=args.verbose)

    try:
        resolve_mode(bool(args.show_protected), bool(args.show_unprotected), bool(args.map_name))
    except UsageError as exc:
        print(f"❌ {exc}", file=sys.stderr)
        return EXIT_USAGE

    overrides = {k: v for k, v in vars(args).items() if k not in ('log_file', 'verbose')}
    try:
        config = load_config(**overrides)
        client = PapiClient.from_edgerc(
            config.edgerc_path,
            config.section,
            account_switch_key=config.account_switch_key,
            timeout=config.http_timeout,
            rate_limiter=RateLimiter(config.rate_limit_delay),
        )
    except ConfigError as exc:
        logger.error(f"Configuration error: {exc}")
        return EXIT_FAILED

    try:
        report = AuditRunner(config, client).run()
    except AuditAbortedError as exc:
        logger.error(f"Audit aborted: {exc}")
        return EXIT_FAILED

    print_report(report)
    try:
        write_outputs(report, config)
    except OSError as exc:
        logger.error(f"Could not write output: {exc}")
        return EXIT_FAILED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
