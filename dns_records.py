#!/usr/bin/env python3
"""
DNS Record Model

Normalized DNS resource records and the YAML record files the auditor
reads and writes. A record file is a YAML sequence of
[hostname, class, type, value] lists.
"""

import logging
from dataclasses import dataclass
from typing import IO, Iterable, List, Tuple

import yaml

# Record types that map a hostname to an address
ADDRESS_RECORD_TYPES = {'A', 'AAAA'}

DEFAULT_RECORD_CLASS = 'IN'

KNOWN_RECORD_CLASSES = {'IN', 'CH', 'HS', 'CS', 'ANY', 'NONE'}

logger = logging.getLogger('zone_auditor.records')


class AuditError(Exception):
    """Base class for fatal auditor errors"""


class RecordFormatError(AuditError):
    """Raised when a record file or answer line cannot be parsed"""


@dataclass(frozen=True)
class Record:
    """Represents a normalized DNS record"""
    hostname: str
    record_class: str
    record_type: str
    value: str

    def __post_init__(self):
        object.__setattr__(self, 'hostname', str(self.hostname).strip().lower())
        object.__setattr__(self, 'record_class', str(self.record_class).strip().upper())
        object.__setattr__(self, 'record_type', str(self.record_type).strip().upper())
        object.__setattr__(self, 'value', str(self.value).strip().lower())

    @property
    def is_address(self) -> bool:
        return self.record_type in ADDRESS_RECORD_TYPES

    @property
    def is_cname(self) -> bool:
        return self.record_type == 'CNAME'

    @property
    def key(self) -> Tuple[str, str, str]:
        """Lookup key across servers; excludes the value"""
        return (self.hostname, self.record_class.lower(), self.record_type.lower())

    def as_list(self) -> List[str]:
        return [self.hostname, self.record_class, self.record_type, self.value]

    def __str__(self) -> str:
        return f"{self.hostname} {self.record_class} {self.record_type} {self.value}"

    @classmethod
    def from_answer_line(cls, line: str) -> 'Record':
        """Parse a presentation-format answer line such as
        ``www.example.com. 300 IN A 192.0.2.1``.

        TTL and class may appear in either order. The TTL is optional and
        dropped; a missing class defaults to IN.
        """
        stripped = line.strip()
        if not stripped or stripped.startswith(';'):
            raise RecordFormatError(f"Not an answer line: {line!r}")

        parts = stripped.split()
        if len(parts) < 3:
            raise RecordFormatError(f"Answer line has too few fields: {line!r}")

        hostname = parts[0]
        index = 1
        ttl_seen = False
        record_class = None

        while index < len(parts):
            token = parts[index]
            if token.isdigit() and not ttl_seen:
                ttl_seen = True
            elif token.upper() in KNOWN_RECORD_CLASSES and record_class is None:
                record_class = token
            else:
                break
            index += 1

        record_class = record_class or DEFAULT_RECORD_CLASS

        if index + 1 >= len(parts):
            raise RecordFormatError(f"Answer line has no type or value: {line!r}")

        record_type = parts[index]
        value = ' '.join(parts[index + 1:])
        return cls(hostname, record_class, record_type, value)


def dump_records(records: Iterable[Record], stream: IO[str]) -> int:
    """Write records to stream as YAML and return how many were written"""
    rows = [record.as_list() for record in records]
    yaml.safe_dump(rows, stream, default_flow_style=None, explicit_start=True)
    logger.debug(f"Serialized {len(rows)} records")
    return len(rows)


def parse_records(document) -> List[Record]:
    """Turn a loaded YAML document into records"""
    if document is None:
        return []
    if not isinstance(document, list):
        raise RecordFormatError(
            f"Record file must contain a list of records, got {type(document).__name__}")

    records = []
    for index, entry in enumerate(document):
        if not isinstance(entry, (list, tuple)) or len(entry) != 4:
            raise RecordFormatError(
                f"Entry {index} must be [hostname, class, type, value], got {entry!r}")
        if any(isinstance(field, (list, dict)) or field is None for field in entry):
            raise RecordFormatError(f"Entry {index} has a non-scalar field: {entry!r}")
        records.append(Record(*[str(field) for field in entry]))
    return records


def load_records(path: str) -> List[Record]:
    """Load records from a YAML record file"""
    logger.info(f"Loading records from {path}")
    with open(path, 'r', encoding='utf-8') as f:
        try:
            document = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise RecordFormatError(f"Failed to parse record file {path}: {e}")

    records = parse_records(document)
    logger.info(f"Loaded {len(records)} records from {path}")
    return records
