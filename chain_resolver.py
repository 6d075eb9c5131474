#!/usr/bin/env python3
"""
CNAME Chain Resolver

Builds hostname -> address and hostname -> alias maps from a record set and
follows every alias to its terminal address record, stopping on dead ends
and loops.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

from dns_records import Record

logger = logging.getLogger('zone_auditor.chains')


@dataclass
class BrokenChain:
    """An alias chain that ended without reaching an address record"""
    hostname: str
    trail: List[Record]

    @property
    def is_cycle(self) -> bool:
        last = self.trail[-1]
        return any(hop.hostname == last.value for hop in self.trail)

    def describe(self) -> List[str]:
        kind = "cyclic" if self.is_cycle else "broken"
        lines = [f"{kind} CNAME chain for {self.hostname}:"]
        for index, hop in enumerate(self.trail):
            lines.append(f"  [{index}] {hop}")
        return lines


@dataclass
class ChainResolution:
    """Result of resolving a record set's alias chains"""
    addresses: Dict[str, Record] = field(default_factory=dict)
    cnames: Dict[str, Record] = field(default_factory=dict)
    resolved: Dict[str, Record] = field(default_factory=dict)
    broken: List[BrokenChain] = field(default_factory=list)

    def final(self, hostname: str) -> Optional[Record]:
        return self.resolved.get(hostname.lower())


def _follow(start: Record, cnames: Dict[str, Record],
            addresses: Dict[str, Record]):
    """Walk an alias chain; return (terminal record, trail, failed)"""
    trail = []
    current = start
    while current.is_cname:
        trail.append(current)
        following = cnames.get(current.value) or addresses.get(current.value)
        if following is None or following in trail:
            return trail[-1], trail, True
        current = following
    return current, trail, False


def resolve_addresses(records: Iterable[Record]) -> ChainResolution:
    """Resolve every CNAME in records to its terminal address record.

    A chain that dead-ends or loops is logged and recorded in ``broken``; its
    hostname is still mapped to the last alias reached, which is not an
    address record.
    """
    resolution = ChainResolution()
    for record in records:
        if record.is_address:
            resolution.addresses[record.hostname] = record
        elif record.is_cname:
            resolution.cnames[record.hostname] = record

    resolution.resolved.update(resolution.addresses)

    for hostname, alias in resolution.cnames.items():
        terminal, trail, failed = _follow(alias, resolution.cnames, resolution.addresses)
        if failed:
            chain = BrokenChain(hostname, trail)
            resolution.broken.append(chain)
            for line in chain.describe():
                logger.warning(line)
        resolution.resolved[hostname] = terminal

    logger.debug(f"Resolved {len(resolution.resolved)} hostnames, "
                 f"{len(resolution.broken)} broken chains")
    return resolution
