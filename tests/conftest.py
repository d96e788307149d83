"""Shared test fixtures for tasktop."""

import logging

import pytest
import structlog

from tasktop.models import ProcessDetail, ProcessEntry, SystemSummary
from tasktop.platform import PlatformError, ProcessControlError


class FakePlatform:
    """In-memory platform driven by a script of readings.

    ``processes`` maps pid -> (ppid, threads, name, busy_ticks, working_set).
    A busy_ticks of None makes the detail query fail for that pid.
    """

    def __init__(self, system_ticks: int = 0, processes: dict | None = None) -> None:
        self.system_ticks = system_ticks
        self.processes: dict = dict(processes or {})
        self.fail_enumeration = False
        self.fail_summary = False
        self.enumeration_order: list[int] | None = None
        self.terminated: list[int] = []
        self.protected: set[int] = set()

    def set_reading(self, system_ticks: int, processes: dict) -> None:
        self.system_ticks = system_ticks
        self.processes = dict(processes)

    def read_system_busy_ticks(self) -> int:
        return self.system_ticks

    def enumerate_processes(self) -> list[ProcessEntry]:
        if self.fail_enumeration:
            raise PlatformError("snapshot failed")
        order = self.enumeration_order or list(self.processes)
        return [
            ProcessEntry(pid=pid, ppid=self.processes[pid][0], threads=self.processes[pid][1], name=self.processes[pid][2])
            for pid in order
        ]

    def query_process_detail(self, pid: int) -> ProcessDetail | None:
        _, _, _, ticks, working_set = self.processes[pid]
        if ticks is None:
            return None
        return ProcessDetail(busy_ticks=ticks, working_set_bytes=working_set)

    def read_system_summary(self) -> SystemSummary:
        if self.fail_summary:
            raise PlatformError("System summary unavailable: denied")
        return SystemSummary(
            memory_total=16 * 1024**3,
            memory_used=8 * 1024**3,
            logical_cpus=8,
            uptime_seconds=3725.0,
        )

    def terminate_process(self, pid: int) -> None:
        if pid in self.protected:
            raise ProcessControlError(f"Access denied terminating PID {pid}")
        if pid not in self.processes:
            raise ProcessControlError(f"No such process: PID {pid}")
        self.terminated.append(pid)
        del self.processes[pid]


def proc(ticks: int | None = 0, name: str = "proc", ppid: int = 1, threads: int = 1, working_set: int = 0):
    """Build a FakePlatform process tuple."""
    return (ppid, threads, name, ticks, working_set)


@pytest.fixture
def fake_platform() -> FakePlatform:
    """A platform with no processes and no baseline."""
    return FakePlatform()


@pytest.fixture(autouse=True)
def quiet_structlog():
    """Keep structlog debug events out of test output."""
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))
    yield
    structlog.reset_defaults()
