"""Text formatting for the summary block and the process table."""

from collections.abc import Sequence
from datetime import datetime

from tasktop.models import ProcessRow, SystemSummary

RULE_WIDTH = 60


def format_uptime(seconds: float) -> str:
    """Format uptime as ``1d 2h 3m 4s``, leaving out the day part when zero."""
    total = int(seconds)
    days, total = divmod(total, 86400)
    hours, total = divmod(total, 3600)
    minutes, secs = divmod(total, 60)
    prefix = f"{days}d " if days > 0 else ""
    return f"{prefix}{hours}h {minutes}m {secs}s"


def format_mb(size: int) -> str:
    """Format a byte count as megabytes with one decimal."""
    return f"{size / (1024 * 1024):.1f}MB"


def format_summary(
    interval: float,
    process_count: int,
    summary: SystemSummary,
    now: datetime | None = None,
) -> list[str]:
    """Return the two summary lines shown above the table."""
    now = now or datetime.now()
    return [
        f"top-like view (interval {interval:.2f}s) | procs: {process_count}"
        f" | uptime: {format_uptime(summary.uptime_seconds)}",
        f"Time: {now:%Y-%m-%d %H:%M:%S}"
        f" | Mem: {format_mb(summary.memory_used)}/{format_mb(summary.memory_total)}"
        f" | Logical CPUs: {summary.logical_cpus}",
    ]


def format_header() -> list[str]:
    """Column header and rule."""
    return [
        f"{'PID':<7}{'PPID':<7}{'CPU%':>8}{'MEM(MB)':>12}{'THREADS':>9}  NAME",
        "-" * RULE_WIDTH,
    ]


def format_row(row: ProcessRow) -> str:
    """Format a single table row."""
    return (
        f"{row.pid:<7}{row.ppid:<7}{row.cpu_percent:>8.1f}"
        f"{row.working_set_mb:>12.1f}{row.threads:>9}  {row.name}"
    )


def limit_rows(rows: Sequence[ProcessRow], max_rows: int) -> Sequence[ProcessRow]:
    """Return the first ``max_rows`` rows, or all of them when ``max_rows`` is 0."""
    if max_rows > 0:
        return rows[:max_rows]
    return rows


def format_table(rows: Sequence[ProcessRow], max_rows: int = 0) -> list[str]:
    """Return header, rule and up to ``max_rows`` formatted rows."""
    return format_header() + [format_row(row) for row in limit_rows(rows, max_rows)]
