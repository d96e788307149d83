"""Data models for tasktop."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class ProcessRow:
    """Immutable row of the ranked process table."""

    pid: int
    ppid: int
    cpu_percent: float  # share of machine-wide busy time since the last sample
    working_set_mb: float
    threads: int
    name: str


@dataclass(slots=True, frozen=True)
class ProcessEntry:
    """One item of a raw process enumeration."""

    pid: int
    ppid: int
    threads: int
    name: str


@dataclass(slots=True, frozen=True)
class ProcessDetail:
    """Best-effort per-process counters."""

    busy_ticks: int  # 100ns units
    working_set_bytes: int


@dataclass(slots=True, frozen=True)
class SystemSummary:
    """Machine-wide figures shown above the process table."""

    memory_total: int  # Bytes
    memory_used: int  # Bytes
    logical_cpus: int
    uptime_seconds: float


@dataclass(slots=True, frozen=True)
class Viewport:
    """Visible terminal area. ``rows == 0`` means the size is unknown."""

    rows: int = 0
