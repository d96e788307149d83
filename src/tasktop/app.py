"""tasktop - continuous top mode as a Textual application."""

import threading

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.containers import Container
from textual.css.query import NoMatches
from textual.widgets import DataTable, Footer, Static
from textual.worker import get_current_worker

from tasktop.formatting import format_summary, limit_rows
from tasktop.layout import FALLBACK_ROWS, resolve_max_rows
from tasktop.logging import get_structlog
from tasktop.models import ProcessRow, SystemSummary, Viewport
from tasktop.monitor import ProcessSampler
from tasktop.platform import Platform, PlatformError, ProcessControlError, PsutilPlatform

log = get_structlog()


class SummaryBlock(Static):
    """Two summary lines followed by a blank separator."""

    DEFAULT_CSS = """
    SummaryBlock {
        height: 3;
        padding-bottom: 1;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize SummaryBlock."""
        super().__init__("Sampling...", *args, **kwargs)
        self._lines: list[str] = []

    @property
    def lines(self) -> list[str]:
        """Summary lines currently shown."""
        return list(self._lines)

    def update_summary(
        self,
        interval: float,
        process_count: int,
        summary: SystemSummary,
    ) -> None:
        """Render the summary for the latest sample."""
        self._lines = format_summary(interval, process_count, summary)
        self.update("\n".join(self._lines))


class ProcessTable(Container):
    """Container for the ranked process table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border-top: solid $primary;
    }
    """

    def __init__(self, *args, **kwargs) -> None:
        """Initialize ProcessTable."""
        super().__init__(*args, **kwargs)
        self._shown_pids: list[int] = []

    @property
    def shown_pids(self) -> list[int]:
        """PIDs currently displayed, in table order."""
        return list(self._shown_pids)

    @property
    def selected_pid(self) -> int | None:
        """PID under the cursor, if any."""
        table = self.query_one("#process-table", DataTable)
        index = table.cursor_row
        if 0 <= index < len(self._shown_pids):
            return self._shown_pids[index]
        return None

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=7)
        table.add_column("PPID", key="ppid", width=7)
        table.add_column("CPU%", key="cpu", width=8)
        table.add_column("MEM(MB)", key="mem", width=10)
        table.add_column("THREADS", key="threads", width=8)
        table.add_column("NAME", key="name")

    def update_rows(self, rows: list[ProcessRow], max_rows: int) -> None:
        """
        Replace the table contents with the ranked rows.

        Rank order changes every cycle, so the table is refilled rather than
        patched in place. The cursor stays on the same PID when it is still
        visible.
        """
        table = self.query_one("#process-table", DataTable)
        selected = self.selected_pid

        visible = limit_rows(rows, max_rows)
        table.clear()
        for row in visible:
            table.add_row(
                str(row.pid),
                str(row.ppid),
                f"{row.cpu_percent:6.1f}",
                f"{row.working_set_mb:9.1f}",
                str(row.threads),
                Text(row.name),
                key=str(row.pid),
            )
        self._shown_pids = [row.pid for row in visible]

        if selected in self._shown_pids:
            table.move_cursor(row=self._shown_pids.index(selected))


class TasktopApp(App):
    """Main tasktop application."""

    TITLE = "tasktop"
    SUB_TITLE = "Process Monitor"

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("k", "kill", "Kill"),
    ]

    def __init__(
        self,
        platform: Platform | None = None,
        interval: float = 1.0,
        max_procs: int = 0,
        fallback_rows: int = FALLBACK_ROWS,
    ) -> None:
        """
        Initialize the TasktopApp.

        Args:
            platform: OS collaborator. Defaults to psutil.
            interval: Seconds between refreshes.
            max_procs: Row cap requested by the user, 0 to fit the terminal.
            fallback_rows: Terminal height assumed when it is unknown.
        """
        super().__init__()
        self._os = platform or PsutilPlatform()
        self._sampler = ProcessSampler(self._os)
        self._sample_lock = threading.Lock()
        self._last_summary: SystemSummary | None = None
        self._refresh_interval = interval
        self._max_procs = max_procs
        self._fallback_rows = fallback_rows

    @property
    def interval(self) -> float:
        """Seconds between refreshes."""
        return self._refresh_interval

    @property
    def sampler(self) -> ProcessSampler:
        """The sampler owned by this app."""
        return self._sampler

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        yield SummaryBlock(id="summary")
        yield ProcessTable()
        yield Footer()

    def on_mount(self) -> None:
        """Take the baseline sample and start the refresh timer."""
        with self._sample_lock:
            self._sampler.sample()
        self.set_interval(self._refresh_interval, self.refresh_in_background)

    def max_rows(self) -> int:
        """Rows that fit the current screen height."""
        return resolve_max_rows(
            Viewport(rows=self.size.height),
            self._max_procs,
            fallback_rows=self._fallback_rows,
        )

    def _collect(self) -> tuple[list[ProcessRow], int, SystemSummary | None]:
        """Sample processes and read the summary. Caller holds the sample lock."""
        rows = self._sampler.sample()
        count = self._sampler.last_process_count()
        try:
            summary = self._os.read_system_summary()
        except PlatformError as e:
            log.warning("summary_failed", error=str(e))
            summary = None
        return rows, count, summary

    def refresh_processes(self) -> None:
        """Sample once and redraw the summary and the table."""
        with self._sample_lock:
            result = self._collect()
        self._show(*result)

    @work(thread=True, group="sampler")
    def refresh_in_background(self) -> None:
        """Sample in a worker thread so enumeration never blocks the UI."""
        # A slow sample may still be running when the next tick fires.
        if not self._sample_lock.acquire(blocking=False):
            return
        try:
            result = self._collect()
        finally:
            self._sample_lock.release()
        if not get_current_worker().is_cancelled:
            self.call_from_thread(self._show, *result)

    def _show(
        self,
        rows: list[ProcessRow],
        process_count: int,
        summary: SystemSummary | None,
    ) -> None:
        if summary is not None:
            self._last_summary = summary
        try:
            if self._last_summary is not None:
                self.query_one("#summary", SummaryBlock).update_summary(
                    self._refresh_interval, process_count, self._last_summary
                )
            self.query_one(ProcessTable).update_rows(rows, self.max_rows())
        except NoMatches:
            # Screen is being torn down.
            return

    def action_kill(self) -> None:
        """Terminate the highlighted process."""
        pid = self.query_one(ProcessTable).selected_pid
        if pid is None:
            self.notify("No process selected", severity="warning")
            return
        try:
            self._os.terminate_process(pid)
        except ProcessControlError as e:
            log.warning("kill_failed", pid=pid, error=str(e))
            self.notify(str(e), severity="error")
            return
        log.info("process_killed", pid=pid)
        self.notify(f"Killed PID {pid}")


def run_top(
    platform: Platform | None = None,
    interval: float = 1.0,
    max_procs: int = 0,
    fallback_rows: int = FALLBACK_ROWS,
) -> None:
    """Run top mode until the user quits."""
    app = TasktopApp(
        platform=platform,
        interval=interval,
        max_procs=max_procs,
        fallback_rows=fallback_rows,
    )
    app.run()
