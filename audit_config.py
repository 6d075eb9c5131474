#!/usr/bin/env python3
"""
Audit Configuration

The immutable settings for one auditor run, built once from the command
line and an optional JSON configuration file.
"""

import json
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional

from resolver_adapter import (ConfigurationError, DEFAULT_TIMEOUT, DEFAULT_PING_COUNT,
                              DEFAULT_PING_TIMEOUT)

DEFAULT_DOMAIN = '.'

CONFIG_KEYS = {'server', 'domain', 'timeout', 'ping_count', 'ping_timeout', 'verbose'}


class Operation(Enum):
    """The auditor operations selectable from the command line"""
    FETCH = "fetch"
    CHECK = "check"
    QUERY = "query"
    PING = "ping"
    REVERSE = "reverse"

    @property
    def needs_server(self) -> bool:
        return self is not Operation.PING


@dataclass(frozen=True)
class AuditConfig:
    """Settings for a single run"""
    operation: Operation
    record_file: Optional[str]
    server: Optional[str] = None
    domain: str = DEFAULT_DOMAIN
    timeout: float = DEFAULT_TIMEOUT
    ping_count: int = DEFAULT_PING_COUNT
    ping_timeout: int = DEFAULT_PING_TIMEOUT
    output_format: str = "text"
    output: Optional[str] = None
    verbose: bool = False
    log_file: Optional[str] = None

    def validate(self):
        if self.operation.needs_server and not self.server:
            raise ConfigurationError(
                f"--server is required for --{self.operation.value}")
        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive, got {self.timeout}")
        if self.ping_count < 1:
            raise ConfigurationError(f"Ping count must be at least 1, got {self.ping_count}")
        return self

    @classmethod
    def from_args(cls, args, file_config: Dict = None) -> 'AuditConfig':
        """Build the configuration; command-line values override the file"""
        file_config = file_config or {}

        operation = None
        record_file = None
        for candidate in Operation:
            value = getattr(args, candidate.value, None)
            if value is not None:
                operation = candidate
                record_file = value
                break
        if operation is None:
            raise ConfigurationError("No operation selected")

        if operation is Operation.FETCH and record_file == '-':
            record_file = None

        def pick(name, default):
            value = getattr(args, name, None)
            if value is not None:
                return value
            return file_config.get(name, default)

        def number(name, convert, default):
            value = pick(name, default)
            # JSON booleans would otherwise pass as 0/1
            if isinstance(value, bool):
                raise ConfigurationError(f"Invalid value for {name}: {value!r}")
            try:
                return convert(value)
            except (TypeError, ValueError):
                raise ConfigurationError(f"Invalid value for {name}: {value!r}")

        file_verbose = file_config.get('verbose', False)
        if not isinstance(file_verbose, bool):
            raise ConfigurationError(f"Invalid value for verbose: {file_verbose!r} (expected true or false)")

        for name in ('server', 'domain'):
            if name in file_config and not isinstance(file_config[name], str):
                raise ConfigurationError(f"Invalid value for {name}: {file_config[name]!r}")

        return cls(
            operation=operation,
            record_file=record_file,
            server=pick('server', None),
            domain=pick('domain', DEFAULT_DOMAIN),
            timeout=number('timeout', float, DEFAULT_TIMEOUT),
            ping_count=number('ping_count', int, DEFAULT_PING_COUNT),
            ping_timeout=number('ping_timeout', int, DEFAULT_PING_TIMEOUT),
            output_format=args.format,
            output=args.output,
            verbose=bool(args.verbose or file_verbose),
            log_file=args.log_file,
        ).validate()


def load_config(config_file: str) -> Dict:
    """Load configuration from JSON file"""
    try:
        with open(config_file, 'r') as f:
            config = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Failed to load config file {config_file}: {e}")

    if not isinstance(config, dict):
        raise ConfigurationError(f"Config file {config_file} must contain a JSON object")

    unknown = set(config) - CONFIG_KEYS
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in config file {config_file}: {', '.join(sorted(unknown))}")
    return config
