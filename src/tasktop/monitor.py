"""Sampling engine for tasktop."""

from tasktop.logging import get_structlog
from tasktop.models import ProcessRow
from tasktop.platform import Platform, PlatformError

_BYTES_PER_MB = 1024 * 1024

log = get_structlog()


def rank_rows(rows: list[ProcessRow]) -> list[ProcessRow]:
    """Sort rows by CPU% descending, breaking ties by PID ascending."""
    return sorted(rows, key=lambda row: (-row.cpu_percent, row.pid))


class ProcessSampler:
    """
    Turns consecutive process snapshots into per-process CPU percentages.

    CPU% is a two-point rate: the busy ticks a process accumulated since the
    previous ``sample()`` divided by the machine-wide busy ticks over the same
    span. Only the immediately preceding sample is remembered.

    A sampler is single-owner: ``sample()`` reads and then replaces the
    baseline, so it must not be called from two places at once.
    """

    def __init__(self, platform: Platform) -> None:
        """
        Initialize the ProcessSampler.

        Args:
            platform: OS collaborator used for every query.
        """
        self._platform = platform
        self._prev_system_ticks = 0
        self._prev_proc_ticks: dict[int, int] = {}
        self._last_process_count = 0

    def last_process_count(self) -> int:
        """Number of rows produced by the most recent sample (0 before any)."""
        return self._last_process_count

    def sample(self) -> list[ProcessRow]:
        """
        Take a sample and return ranked process rows.

        Returns an empty list if the platform cannot enumerate processes. The
        baseline is kept in that case so the next cycle still has a delta.
        """
        system_ticks = self._platform.read_system_busy_ticks()
        try:
            entries = list(self._platform.enumerate_processes())
        except PlatformError as e:
            log.warning("sample_failed", error=str(e))
            self._last_process_count = 0
            return []

        has_baseline = self._prev_system_ticks != 0 and system_ticks > self._prev_system_ticks
        system_delta = system_ticks - self._prev_system_ticks

        current_ticks: dict[int, int] = {}
        rows: list[ProcessRow] = []
        for entry in entries:
            detail = self._platform.query_process_detail(entry.pid)
            proc_ticks = detail.busy_ticks if detail else 0
            working_set = detail.working_set_bytes if detail else 0
            current_ticks[entry.pid] = proc_ticks

            cpu = 0.0
            if has_baseline:
                prev_ticks = self._prev_proc_ticks.get(entry.pid)
                if prev_ticks is not None and proc_ticks >= prev_ticks:
                    cpu = 100.0 * (proc_ticks - prev_ticks) / system_delta

            rows.append(
                ProcessRow(
                    pid=entry.pid,
                    ppid=entry.ppid,
                    cpu_percent=cpu,
                    working_set_mb=working_set / _BYTES_PER_MB,
                    threads=entry.threads,
                    name=entry.name,
                )
            )

        # Replace, never merge: PIDs missing this cycle lose their baseline.
        self._prev_proc_ticks = current_ticks
        self._prev_system_ticks = system_ticks
        self._last_process_count = len(rows)

        log.debug("sampled", processes=len(rows), baseline=has_baseline)
        return rank_rows(rows)
