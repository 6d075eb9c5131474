#!/usr/bin/env python3
"""
Record Comparators

The four audit passes. Each one walks its input once, in order, records a
pass/fail outcome per record and never stops early on a bad record.

  check_records  - exact diff of two record sets
  query_records  - compare a record set with a live server's answers
  check_reverse  - verify address records have matching reverse entries
  ping_records   - probe every resolved address for reachability
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from audit_report import UserOutput
from chain_resolver import ChainResolution, resolve_addresses
from dns_records import Record

logger = logging.getLogger('zone_auditor.comparators')


class FailureKind(Enum):
    """Why a record failed an audit pass"""
    LOOKUP = "LOOKUP"
    MISMATCH = "MISMATCH"
    UNREACHABLE = "UNREACHABLE"
    BROKEN_CHAIN = "BROKEN_CHAIN"


@dataclass(frozen=True)
class Outcome:
    """Result of auditing a single record"""
    record: Record
    counterpart: Optional[Record] = None
    kind: Optional[FailureKind] = None
    detail: str = ""

    @property
    def ok(self) -> bool:
        return self.kind is None


@dataclass
class ComparisonResult:
    """Summary of one audit pass"""
    name: str
    formatter: str = 'record'
    checked: int = 0
    failures: List[Outcome] = field(default_factory=list)
    okay: List[Outcome] = field(default_factory=list)

    @property
    def errors(self) -> int:
        return len(self.failures)

    def add(self, outcome: Outcome, output: UserOutput):
        if outcome.ok:
            self.okay.append(outcome)
            output.verbose_info(f"OK: {outcome.record}")
            logger.debug(f"OK: {outcome.record}")
        else:
            self.failures.append(outcome)
            message = f"{outcome.kind.value}: {outcome.record}"
            if outcome.detail:
                message += f" ({outcome.detail})"
            output.warning(message)
            logger.warning(message)


def check_records(primary: Sequence[Record], secondary: Sequence[Record],
                  output: UserOutput = None) -> ComparisonResult:
    """Diff primary against secondary by (hostname, class, type)"""
    output = output or UserOutput()
    result = ComparisonResult(name="check", formatter='record', checked=len(primary))

    by_key: Dict[Tuple[str, str, str], Record] = {record.key: record for record in secondary}

    for record in primary:
        other = by_key.get(record.key)
        if other is None:
            result.add(Outcome(record, kind=FailureKind.LOOKUP, detail="missing on server"), output)
        elif other != record:
            result.add(Outcome(record, other, FailureKind.MISMATCH,
                               f"expected {record.value}, found {other.value}"), output)
        else:
            result.add(Outcome(record, other), output)

    return result


def _resolve_live(answer: Record, resolution: ChainResolution,
                  adapter, server: str) -> Optional[Record]:
    """Follow a live answer to an address, locally first, then on the server"""
    if answer.is_address:
        return answer

    local = resolution.final(answer.value)
    if local is not None:
        return local

    seen = [answer]
    current = answer
    while current.is_cname:
        following = adapter.query_host(server, current.value)
        if following is None or following in seen:
            return None
        seen.append(following)
        current = following
    return current


def query_records(primary: Sequence[Record], adapter, server: str,
                  output: UserOutput = None) -> ComparisonResult:
    """Compare primary records with what server answers for each hostname.

    Differing answers are resolved through their alias chains before being
    flagged, so two servers pointing at the same final address through
    different aliases agree.
    """
    output = output or UserOutput()
    result = ComparisonResult(name="query", formatter='paired', checked=len(primary))
    resolution = resolve_addresses(primary)

    broken = {chain.hostname: chain for chain in resolution.broken}

    for record in primary:
        chain = broken.get(record.hostname) if record.is_cname else None
        if chain is not None:
            hops = " -> ".join(hop.hostname for hop in chain.trail) + f" -> {chain.trail[-1].value}"
            result.add(Outcome(record, chain.trail[-1], FailureKind.BROKEN_CHAIN, hops), output)
            continue

        answer = adapter.query_host(server, record.hostname)

        if answer is None:
            detail = f"no answer from {server}"
            local = record if record.is_address else resolution.final(record.hostname)
            if local is not None and local.is_address:
                reverse = adapter.query_address(server, local.value)
                if reverse is not None:
                    detail += f"; {local.value} reverses to {reverse.value}"
                else:
                    detail += f"; no reverse entry for {local.value}"
            result.add(Outcome(record, kind=FailureKind.LOOKUP, detail=detail), output)
            continue

        if answer.value == record.value:
            result.add(Outcome(record, answer), output)
            continue

        expected = record if record.is_address else resolution.final(record.hostname)
        actual = _resolve_live(answer, resolution, adapter, server)

        if expected is not None and actual is not None and expected.value == actual.value:
            result.add(Outcome(record, answer, detail=f"both resolve to {expected.value}"), output)
        else:
            expected_value = expected.value if expected is not None else "unresolved"
            actual_value = actual.value if actual is not None else "unresolved"
            result.add(Outcome(record, answer, FailureKind.MISMATCH,
                               f"resolves to {expected_value} locally, {actual_value} on {server}"), output)

    return result


def check_reverse(records: Sequence[Record], adapter, server: str,
                  output: UserOutput = None) -> ComparisonResult:
    """Verify each address record reverses back to its own hostname"""
    output = output or UserOutput()
    addresses = [record for record in records if record.is_address]
    result = ComparisonResult(name="reverse", formatter='paired', checked=len(addresses))

    for record in addresses:
        answer = adapter.query_address(server, record.value)
        if answer is None:
            result.add(Outcome(record, kind=FailureKind.LOOKUP,
                               detail=f"no reverse entry on {server}"), output)
        elif answer.value != record.hostname:
            result.add(Outcome(record, answer, FailureKind.MISMATCH,
                               f"{record.value} reverses to {answer.value}"), output)
        else:
            result.add(Outcome(record, answer), output)

    return result


def ping_records(records: Sequence[Record], prober,
                 output: UserOutput = None) -> ComparisonResult:
    """Probe the resolved address of every hostname"""
    output = output or UserOutput()
    resolution = resolve_addresses(records)
    result = ComparisonResult(name="ping", formatter='record', checked=len(resolution.resolved))

    hostnames = []
    for record in records:
        if record.hostname in resolution.resolved and record.hostname not in hostnames:
            hostnames.append(record.hostname)

    for hostname in hostnames:
        target = resolution.resolved[hostname]
        record = resolution.cnames.get(hostname) or target
        counterpart = target if target is not record else None
        if prober.probe(target.value):
            result.add(Outcome(record, counterpart), output)
        else:
            result.add(Outcome(record, counterpart, FailureKind.UNREACHABLE,
                               f"{target.value} did not answer"), output)

    return result
