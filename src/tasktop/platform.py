"""Operating system collaborator for tasktop.

Everything that talks to the OS lives here. The sampler only sees the
``Platform`` protocol, which keeps it testable with an in-memory fake.
"""

import time
from collections.abc import Iterable
from typing import Protocol

import psutil

from tasktop.models import ProcessDetail, ProcessEntry, SystemSummary

# Counters are kept as integers in 100ns units.
TICKS_PER_SECOND = 10_000_000

_DETAIL_ERRORS = (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess)


class PlatformError(RuntimeError):
    """The OS could not answer a query."""


class ProcessControlError(PlatformError):
    """A process could not be terminated."""


class Platform(Protocol):
    """Operations tasktop needs from the operating system."""

    def read_system_busy_ticks(self) -> int:
        """Return machine-wide non-idle time since boot, in ticks."""
        ...

    def enumerate_processes(self) -> Iterable[ProcessEntry]:
        """Return a snapshot of running processes in no particular order."""
        ...

    def query_process_detail(self, pid: int) -> ProcessDetail | None:
        """Return busy ticks and working set for ``pid``, or None."""
        ...

    def read_system_summary(self) -> SystemSummary:
        """Return memory, CPU count and uptime figures, raising PlatformError on failure."""
        ...

    def terminate_process(self, pid: int) -> None:
        """Terminate ``pid``, raising ProcessControlError on failure."""
        ...


def to_ticks(seconds: float) -> int:
    """Convert a psutil time value in seconds to integer ticks."""
    return int(round(seconds * TICKS_PER_SECOND))


def busy_seconds(times) -> float:
    """Return the non-idle part of a ``psutil.cpu_times()`` result.

    On Linux ``guest`` and ``guest_nice`` are already counted in ``user``
    and ``nice``, so they are subtracted before summing.
    """
    total = sum(times)
    if psutil.LINUX:
        total -= getattr(times, "guest", 0.0)
        total -= getattr(times, "guest_nice", 0.0)
    idle = times.idle + getattr(times, "iowait", 0.0)
    return max(0.0, total - idle)


class PsutilPlatform:
    """Platform implementation backed by psutil."""

    def read_system_busy_ticks(self) -> int:
        """
        Read total non-idle CPU time across all cores.

        Returns 0 when the counters are unavailable, which the sampler
        treats as "no baseline".
        """
        try:
            times = psutil.cpu_times()
        except (OSError, psutil.Error):
            return 0
        return to_ticks(busy_seconds(times))

    def enumerate_processes(self) -> list[ProcessEntry]:
        """
        Enumerate running processes.

        Processes that vanish during iteration are skipped by psutil;
        attributes that cannot be read fall back to zero/empty values.

        Raises:
            PlatformError: If no snapshot could be produced at all.
        """
        attrs = ["pid", "ppid", "num_threads", "name"]
        entries: list[ProcessEntry] = []
        try:
            for proc in psutil.process_iter(attrs=attrs, ad_value=None):
                info = proc.info
                entries.append(
                    ProcessEntry(
                        pid=info.get("pid") or 0,
                        ppid=info.get("ppid") or 0,
                        threads=info.get("num_threads") or 0,
                        name=info.get("name") or "",
                    )
                )
        except (OSError, psutil.Error) as e:
            raise PlatformError(f"process enumeration failed: {e}") from e
        return entries

    def query_process_detail(self, pid: int) -> ProcessDetail | None:
        """
        Query busy time and working set for a single process.

        Returns None if the process is gone or cannot be opened. Counters
        that cannot be read individually are reported as 0.
        """
        try:
            proc = psutil.Process(pid)
        except _DETAIL_ERRORS:
            return None

        busy_ticks = 0
        working_set = 0
        with proc.oneshot():
            try:
                times = proc.cpu_times()
                busy_ticks = to_ticks(times.user + times.system)
            except _DETAIL_ERRORS:
                busy_ticks = 0
            try:
                working_set = proc.memory_info().rss
            except _DETAIL_ERRORS:
                working_set = 0
        return ProcessDetail(busy_ticks=busy_ticks, working_set_bytes=working_set)

    def read_system_summary(self) -> SystemSummary:
        """
        Collect memory, logical CPU count and uptime.

        Raises:
            PlatformError: If memory or boot time cannot be read.
        """
        try:
            mem = psutil.virtual_memory()
            booted = psutil.boot_time()
        except (OSError, psutil.Error) as e:
            raise PlatformError(f"System summary unavailable: {e}") from e
        return SystemSummary(
            memory_total=mem.total,
            memory_used=mem.total - mem.available,
            logical_cpus=psutil.cpu_count(logical=True) or 0,
            uptime_seconds=max(0.0, time.time() - booted),
        )

    def terminate_process(self, pid: int) -> None:
        """
        Terminate a process by PID.

        Raises:
            ProcessControlError: With a readable reason when it fails.
        """
        try:
            psutil.Process(pid).terminate()
        except psutil.NoSuchProcess as e:
            raise ProcessControlError(f"No such process: PID {pid}") from e
        except psutil.AccessDenied as e:
            raise ProcessControlError(f"Access denied terminating PID {pid}") from e
        except (OSError, psutil.Error) as e:
            raise ProcessControlError(f"Failed to terminate PID {pid}: {e}") from e
