#!/usr/bin/env python3
"""
Audit Reporting

Logging setup, user-facing output and the report generators that turn a
comparator result into a text or JSON summary.
"""

import json
import logging
import sys
from typing import Callable, Dict, List

from tabulate import tabulate


def setup_logging(verbose: bool = False, log_file: str = None) -> logging.Logger:
    """Setup logging configuration"""
    logger = logging.getLogger('zone_auditor')
    logger.setLevel(logging.DEBUG if verbose else logging.INFO)

    # Clear any existing handlers
    logger.handlers.clear()

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Console handler (only in verbose mode)
    if verbose:
        console_handler = logging.StreamHandler()
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if not logger.handlers:
        logger.addHandler(logging.NullHandler())

    return logger


class UserOutput:
    """Handle user-facing output separate from logging"""

    def __init__(self, verbose: bool = False, stream=None):
        self.verbose = verbose
        self.stream = stream

    def _out(self):
        return self.stream if self.stream is not None else sys.stdout

    def info(self, message: str):
        """Print informational message to user"""
        print(message, file=self._out())

    def success(self, message: str):
        """Print success message to user"""
        print(message, file=self._out())

    def warning(self, message: str):
        """Print warning message to user"""
        print(f"WARNING: {message}", file=self._out())

    def error(self, message: str):
        """Print error message to user"""
        print(f"ERROR: {message}", file=sys.stderr)

    def verbose_info(self, message: str):
        """Print verbose information if verbose mode is enabled"""
        if self.verbose:
            print(f"[VERBOSE] {message}", file=self._out())


def format_record(outcome) -> List[str]:
    """One line per record"""
    return [f"  {outcome.record}"]


def format_paired(outcome) -> List[str]:
    """Primary record followed by the live answer it was compared with"""
    lines = [f"  {outcome.record}"]
    if outcome.counterpart is not None:
        lines.append(f"    -> {outcome.counterpart}")
    return lines


FORMATTERS: Dict[str, Callable] = {
    'record': format_record,
    'paired': format_paired,
}


class ReportGenerator:
    """Generate audit reports"""

    def generate_text_report(self, result: 'ComparisonResult') -> str:
        """Generate a text audit report"""
        formatter = FORMATTERS.get(result.formatter, format_record)
        report_lines = []
        title = f"Zone Audit Report: {result.name}"
        report_lines.append(title)
        report_lines.append("=" * len(title))
        report_lines.append("")

        report_lines.append("Summary:")
        report_lines.append(f"  Checked: {result.checked}")
        report_lines.append(f"  Passed: {len(result.okay)}")
        report_lines.append(f"  Errors: {result.errors}")
        report_lines.append("")

        if result.failures:
            rows = [[f.kind.value, f.record.hostname, f.record.record_type, f.record.value,
                     f.counterpart.value if f.counterpart is not None else "", f.detail]
                    for f in result.failures]
            headers = ["Failure", "Hostname", "Type", "Expected", "Actual", "Detail"]
            report_lines.append("FAILED RECORDS:")
            report_lines.append(tabulate(rows, headers=headers, tablefmt="github"))
            report_lines.append("")

            # Passing records are listed only when something failed
            if result.okay:
                report_lines.append("PASSED RECORDS:")
                for outcome in result.okay:
                    report_lines.extend(formatter(outcome))
                report_lines.append("")

        if result.errors == 0:
            report_lines.append("AUDIT RESULT: PASS")
        else:
            report_lines.append("AUDIT RESULT: FAIL")

        return "\n".join(report_lines)

    def generate_json_report(self, result: 'ComparisonResult') -> str:
        """Generate a JSON audit report"""

        def outcome_data(outcome):
            return {
                "record": outcome.record.as_list(),
                "counterpart": outcome.counterpart.as_list() if outcome.counterpart is not None else None,
                "failure": outcome.kind.value if outcome.kind is not None else None,
                "detail": outcome.detail or None,
            }

        report_data = {
            "comparison": result.name,
            "summary": {
                "checked": result.checked,
                "passed": len(result.okay),
                "errors": result.errors,
            },
            "failures": [outcome_data(o) for o in result.failures],
            "passed": [outcome_data(o) for o in result.okay],
            "overall_status": "PASS" if result.errors == 0 else "FAIL",
        }
        return json.dumps(report_data, indent=2)
