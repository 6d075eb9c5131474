#!/usr/bin/env python3
"""
Resolver Adapter

Live DNS access for the auditor: zone transfers, forward queries and
reverse lookups against one named server, plus a reachability prober.
Lookup failures of any kind are logged and reported as "no result" so the
comparators can treat absence uniformly.
"""

import ipaddress
import logging
import socket
import subprocess
from typing import Dict, List, Optional

import dns.exception
import dns.message
import dns.query
import dns.rdatatype
import dns.rcode
import dns.reversename

from dns_records import Record, AuditError

# Metadata/control records left out of transferred record sets
EXCLUDED_TRANSFER_TYPES = {'TXT', 'HINFO', 'SOA', 'NS'}

DEFAULT_TIMEOUT = 5.0
DEFAULT_PING_COUNT = 5
DEFAULT_PING_TIMEOUT = 2


class ConfigurationError(AuditError):
    """Raised when the run cannot be configured (bad server, bad config file)"""


def resolve_nameserver_to_ip(nameserver: str) -> str:
    """Resolve a nameserver FQDN to an IP address if needed"""
    try:
        ipaddress.ip_address(nameserver)
        return nameserver
    except ValueError:
        pass

    try:
        infos = socket.getaddrinfo(nameserver, 53, proto=socket.IPPROTO_UDP)
    except socket.gaierror as e:
        raise ConfigurationError(f"Unable to resolve nameserver {nameserver}: {e}")

    if infos:
        return infos[0][4][0]
    raise ConfigurationError(f"No usable address for nameserver {nameserver}")


def answer_records(rrset) -> List[Record]:
    """Normalize the answer lines of an rrset into records"""
    if not rrset:
        return []
    return [Record.from_answer_line(line) for line in rrset.to_text().splitlines()]


class DNSResolverAdapter:
    """Queries one DNS server at a time through dnspython"""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT, logger: logging.Logger = None):
        self.timeout = timeout
        self.logger = logger or logging.getLogger('zone_auditor.resolver')
        self._server_ips: Dict[str, str] = {}

    def _server_ip(self, server: str) -> str:
        if server not in self._server_ips:
            self._server_ips[server] = resolve_nameserver_to_ip(server)
            self.logger.debug(f"Using {self._server_ips[server]} for server {server}")
        return self._server_ips[server]

    def transfer(self, server: str, zone: str) -> List[Record]:
        """Perform a zone transfer and return the host-mapping records"""
        server_ip = self._server_ip(server)
        self.logger.info(f"Requesting zone transfer of '{zone}' from {server} ({server_ip})")

        records = []
        skipped = 0
        try:
            for message in dns.query.xfr(server_ip, zone, timeout=self.timeout,
                                         lifetime=self.timeout * 6, relativize=False):
                for rrset in message.answer:
                    record_type = dns.rdatatype.to_text(rrset.rdtype)
                    if record_type in EXCLUDED_TRANSFER_TYPES:
                        skipped += len(rrset)
                        continue
                    records.extend(answer_records(rrset))
        except (dns.exception.DNSException, OSError, EOFError) as e:
            self.logger.warning(f"Zone transfer of '{zone}' from {server} failed: {e}")
            return []

        self.logger.info(f"Zone transfer returned {len(records)} records ({skipped} metadata records skipped)")
        return records

    def _first_answer(self, server: str, qname, rdtype: str) -> Optional[Record]:
        server_ip = self._server_ip(server)
        query = dns.message.make_query(qname, rdtype)
        try:
            response = dns.query.udp(query, server_ip, timeout=self.timeout)
        except (dns.exception.DNSException, OSError) as e:
            self.logger.debug(f"Query {qname} {rdtype} on {server} failed: {e}")
            return None

        if response.rcode() != dns.rcode.NOERROR:
            self.logger.debug(f"Query {qname} {rdtype} on {server}: {dns.rcode.to_text(response.rcode())}")
            return None

        for rrset in response.answer:
            records = answer_records(rrset)
            if records:
                return records[0]

        self.logger.debug(f"No answer for {qname} {rdtype} on {server}")
        return None

    def query_host(self, server: str, hostname: str) -> Optional[Record]:
        """Return the first answer for hostname (A, then AAAA), or None.

        For an alias this is the CNAME record itself.
        """
        self.logger.debug(f"Querying {server} for {hostname}")
        for rdtype in ('A', 'AAAA'):
            answer = self._first_answer(server, hostname, rdtype)
            if answer is not None:
                return answer
        return None

    def query_address(self, server: str, address: str) -> Optional[Record]:
        """Reverse-lookup address and return the first PTR answer, or None"""
        try:
            reverse_name = dns.reversename.from_address(address)
        except (dns.exception.SyntaxError, ValueError) as e:
            self.logger.debug(f"Cannot build reverse name for {address}: {e}")
            return None

        self.logger.debug(f"Reverse lookup of {address} ({reverse_name}) on {server}")
        return self._first_answer(server, reverse_name, 'PTR')


class PingProber:
    """Checks reachability with the system ping binary"""

    def __init__(self, count: int = DEFAULT_PING_COUNT, timeout: int = DEFAULT_PING_TIMEOUT,
                 logger: logging.Logger = None):
        self.count = count
        self.timeout = timeout
        self.logger = logger or logging.getLogger('zone_auditor.prober')

    def probe(self, address: str) -> bool:
        """Return True when at least one ping to address is answered"""
        cmd = ['ping', '-c', str(self.count), '-W', str(self.timeout), address]
        self.logger.debug(f"Running: {' '.join(cmd)}")

        try:
            result = subprocess.run(cmd, capture_output=True, text=True,
                                    timeout=self.count * (self.timeout + 1) + 5)
        except subprocess.TimeoutExpired:
            self.logger.warning(f"Ping of {address} timed out")
            return False
        except OSError as e:
            self.logger.error(f"Unable to run ping: {e}")
            return False

        if result.returncode != 0:
            self.logger.debug(f"Ping of {address} failed: {result.stdout.strip()[-200:]}")
        return result.returncode == 0
