"""Command line entry point for tasktop."""

import shutil
import time
from pathlib import Path

import click
from rich.console import Console
from rich.markup import escape

from tasktop import logging as tlog
from tasktop.config import Config
from tasktop.formatting import format_summary, format_table
from tasktop.layout import resolve_max_rows
from tasktop.models import Viewport
from tasktop.monitor import ProcessSampler
from tasktop.platform import Platform, PlatformError, ProcessControlError, PsutilPlatform

CONTEXT_SETTINGS = {"help_option_names": ["-h", "-?", "--help"]}


def detect_viewport() -> Viewport:
    """Return the terminal height, or an unknown viewport."""
    size = shutil.get_terminal_size(fallback=(0, 0))
    return Viewport(rows=max(0, size.lines))


def render_once(
    platform: Platform,
    config: Config,
    max_procs: int,
    console: Console | None = None,
    viewport: Viewport | None = None,
) -> None:
    """
    Print one snapshot: warm up the sampler, wait briefly, sample and print.

    Args:
        platform: OS collaborator.
        config: Loaded configuration (warm-up delay, fallback height).
        max_procs: Row cap, 0 to fit the terminal.
        console: Output console. Defaults to stdout.
        viewport: Terminal geometry. Detected when omitted.
    """
    console = console or Console(highlight=False)
    sampler = ProcessSampler(platform)
    delay = config.sampling.warmup_seconds

    sampler.sample()
    time.sleep(delay)
    rows = sampler.sample()

    max_rows = resolve_max_rows(
        viewport or detect_viewport(),
        max_procs,
        fallback_rows=config.display.fallback_rows,
    )
    lines: list[str] = []
    try:
        summary = platform.read_system_summary()
    except PlatformError as e:
        tlog.get_structlog().warning("summary_failed", error=str(e))
        tlog.warn(escape(str(e)))
    else:
        lines.extend(format_summary(delay, sampler.last_process_count(), summary))
        lines.append("")
    lines.extend(format_table(rows, max_rows))
    for line in lines:
        console.print(line, markup=False, soft_wrap=True)


def _kill(platform: Platform, pid: int) -> None:
    log = tlog.get_structlog()
    try:
        platform.terminate_process(pid)
    except ProcessControlError as e:
        log.warning("kill_failed", pid=pid, error=str(e))
        tlog.error(escape(str(e)))
        raise SystemExit(1) from e
    log.info("process_killed", pid=pid)
    click.echo(f"Killed PID {pid}")


@click.command(context_settings=CONTEXT_SETTINGS)
@click.option(
    "-t",
    "--top",
    type=click.BOOL,
    is_flag=False,
    flag_value=True,
    default=False,
    help="Refresh continuously (top mode). Accepts --top=yes/no.",
)
@click.option(
    "-s",
    "--seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds between refreshes (implies --top).",
)
@click.option(
    "-n",
    "--numprocs",
    type=click.IntRange(min=1),
    default=None,
    help="Max processes to display (default: fit terminal).",
)
@click.option("-k", "--kill", "kill_pid", type=click.IntRange(min=0), default=None, help="Terminate a process.")
@click.option(
    "-c",
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config.toml.",
)
@click.version_option(package_name="tasktop")
def main(
    top: bool,
    seconds: float | None,
    numprocs: int | None,
    kill_pid: int | None,
    config_path: Path | None,
) -> None:
    """Show running processes ranked by CPU usage."""
    try:
        config = Config.load(config_path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e

    tlog.configure(config)
    log = tlog.get_structlog()

    interval = seconds if seconds is not None else config.sampling.interval_seconds
    top_mode = top or seconds is not None
    max_procs = numprocs if numprocs is not None else config.display.max_procs
    log.info("started", top=top_mode, interval=interval, max_procs=max_procs)

    platform = PsutilPlatform()

    if kill_pid is not None:
        _kill(platform, kill_pid)
        if not top_mode:
            return

    if top_mode:
        from tasktop.app import run_top

        run_top(
            platform=platform,
            interval=interval,
            max_procs=max_procs,
            fallback_rows=config.display.fallback_rows,
        )
    else:
        render_once(platform, config, max_procs)


if __name__ == "__main__":
    main()
