#!/usr/bin/env python3
"""
DNS Zone Auditor

Fetches zone records through a zone transfer, stores them as YAML and audits
them against a live server: an exact diff against a fresh transfer, a
per-hostname query comparison, a reverse lookup check, or a reachability
ping of every resolved address.
"""

import argparse
import logging
import sys
from typing import List

from audit_config import AuditConfig, Operation, load_config
from audit_report import ReportGenerator, UserOutput, setup_logging
from comparators import ComparisonResult, check_records, check_reverse, ping_records, query_records
from dns_records import AuditError, dump_records, load_records
from resolver_adapter import DNSResolverAdapter, PingProber

EXIT_OK = 0
EXIT_FAILURES = 1
EXIT_FATAL = 2
EXIT_INTERRUPTED = 130

COPYRIGHT = """zone_auditor - DNS zone audit utility

Permission is hereby granted, free of charge, to any person obtaining a copy
of this software and associated documentation files (the "Software"), to deal
in the Software without restriction, including without limitation the rights
to use, copy, modify, merge, publish, distribute, sublicense, and/or sell
copies of the Software, and to permit persons to whom the Software is
furnished to do so, subject to the following conditions:

The above copyright notice and this permission notice shall be included in
all copies or substantial portions of the Software.

THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR
IMPLIED, INCLUDING BUT NOT LIMITED TO THE WARRANTIES OF MERCHANTABILITY,
FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT."""


class CopyrightAction(argparse.Action):
    """Print the license text and exit"""

    def __init__(self, option_strings, dest, **kwargs):
        super().__init__(option_strings, dest, nargs=0, default=argparse.SUPPRESS, **kwargs)

    def __call__(self, parser, namespace, values, option_string=None):
        print(COPYRIGHT)
        parser.exit(EXIT_OK)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Audit DNS zone data against a live server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Transfer a zone and store its records
  python zone_auditor.py --server ns1.example.com --domain example.com --fetch records.yaml

  # Diff stored records against a fresh transfer
  python zone_auditor.py --server ns1.example.com --domain example.com --check records.yaml

  # Compare stored records with another server's answers
  python zone_auditor.py --server ns2.example.com --query records.yaml

  # Verify reverse entries, JSON report
  python zone_auditor.py --server ns1.example.com --reverse records.yaml --format json

  # Ping every resolved address
  python zone_auditor.py --ping records.yaml

Configuration file format (JSON):
{
    "server": "ns1.example.com",
    "domain": "example.com",
    "timeout": 5,
    "ping_count": 5,
    "ping_timeout": 2,
    "verbose": false
}
        """
    )

    operations = parser.add_mutually_exclusive_group(required=True)
    operations.add_argument("--fetch", nargs="?", const="-", metavar="FILE",
                            help="Transfer the zone and write its records to FILE (default: stdout)")
    operations.add_argument("--check", metavar="FILE",
                            help="Diff records in FILE against a fresh zone transfer")
    operations.add_argument("--query", metavar="FILE",
                            help="Compare records in FILE with the server's answers")
    operations.add_argument("--ping", metavar="FILE",
                            help="Ping the resolved address of every hostname in FILE")
    operations.add_argument("--reverse", metavar="FILE",
                            help="Check reverse lookups of the address records in FILE")
    operations.add_argument("--copy", action=CopyrightAction,
                            help="Show license information and exit")

    parser.add_argument("-s", "--server", help="DNS server to query")
    parser.add_argument("-d", "--domain", help="Zone to transfer (default: '.')")
    parser.add_argument("-c", "--config", help="Configuration file (JSON)")
    parser.add_argument("--timeout", type=float,
                        help="DNS query timeout in seconds (default: 5)")
    parser.add_argument("--ping-count", type=int,
                        help="Pings sent per address (default: 5)")
    parser.add_argument("--ping-timeout", type=int,
                        help="Seconds to wait for each ping reply (default: 2)")
    parser.add_argument("-f", "--format", choices=["text", "json"],
                        default="text", help="Report format (default: text)")
    parser.add_argument("-o", "--output", help="Output file for the report")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="Enable verbose output")
    parser.add_argument("--log-file", help="Save detailed logs to file")
    return parser


def fetch(config: AuditConfig, adapter, user_output: UserOutput,
          logger: logging.Logger) -> int:
    """Transfer the zone and persist its records; returns the error count"""
    records = adapter.transfer(config.server, config.domain)

    if config.record_file:
        with open(config.record_file, 'w', encoding='utf-8') as f:
            dump_records(records, f)
        user_output.info(f"Retrieved {len(records)} records from {config.server}, saved to {config.record_file}")
    else:
        dump_records(records, sys.stdout)
        print(f"Retrieved {len(records)} records from {config.server}", file=sys.stderr)

    logger.info(f"Fetched {len(records)} records for zone '{config.domain}'")
    if not records:
        user_output.error(f"No records retrieved for zone '{config.domain}' from {config.server}")
        return 1
    return 0


def compare(config: AuditConfig, adapter, prober,
            user_output: UserOutput) -> ComparisonResult:
    """Load the stored records and run the selected comparator"""
    records = load_records(config.record_file)
    user_output.verbose_info(f"Loaded {len(records)} records from {config.record_file}")

    if config.operation is Operation.CHECK:
        live = adapter.transfer(config.server, config.domain)
        user_output.verbose_info(f"Transferred {len(live)} records from {config.server}")
        return check_records(records, live, user_output)
    if config.operation is Operation.QUERY:
        return query_records(records, adapter, config.server, user_output)
    if config.operation is Operation.REVERSE:
        return check_reverse(records, adapter, config.server, user_output)
    return ping_records(records, prober, user_output)


def run(config: AuditConfig, adapter=None, prober=None,
        logger: logging.Logger = None) -> int:
    """Run the configured operation and return its error count"""
    logger = logger or logging.getLogger('zone_auditor')
    adapter = adapter or DNSResolverAdapter(timeout=config.timeout, logger=logger)
    prober = prober or PingProber(config.ping_count, config.ping_timeout, logger=logger)

    # Diagnostics must not interleave with a report written to stdout
    diagnostics = sys.stderr if config.output_format == "json" and not config.output else None
    user_output = UserOutput(config.verbose, stream=diagnostics)

    if config.operation is Operation.FETCH:
        return fetch(config, adapter, user_output, logger)

    result = compare(config, adapter, prober, user_output)

    reporter = ReportGenerator()
    if config.output_format == "json":
        report = reporter.generate_json_report(result)
    else:
        report = reporter.generate_text_report(result)

    if config.output:
        with open(config.output, 'w', encoding='utf-8') as f:
            f.write(report)
        user_output.info(f"Audit report saved to: {config.output}")
    else:
        print(report)

    logger.info(f"Audit '{result.name}' finished: {result.checked} checked, {result.errors} errors")
    return result.errors


def main(argv: List[str] = None) -> int:
    """Main function"""
    parser = build_parser()
    args = parser.parse_args(argv)
    user_output = UserOutput(args.verbose)

    try:
        file_config = load_config(args.config) if args.config else {}
        config = AuditConfig.from_args(args, file_config)
    except AuditError as e:
        user_output.error(str(e))
        return EXIT_FATAL

    logger = setup_logging(config.verbose, config.log_file)
    logger.info(f"Zone auditor started: {config.operation.value}")
    logger.debug(f"Configuration: {config}")

    try:
        errors = run(config, logger=logger)
    except KeyboardInterrupt:
        user_output.info("\nAudit cancelled by user")
        return EXIT_INTERRUPTED
    except (AuditError, OSError) as e:
        logger.error(f"Fatal error: {e}", exc_info=config.verbose)
        user_output.error(str(e))
        return EXIT_FATAL

    if errors:
        user_output.error(f"AUDIT FAILED: {errors} errors")
        return EXIT_FAILURES

    logger.info("Audit completed successfully")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
