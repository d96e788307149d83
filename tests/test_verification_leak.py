"""Verification Test: Bounded state and memory.

The sampler keeps only the previous sample's per-process ticks, so its state
must track the live process count and the process RSS must stay flat over
many cycles.
"""

import gc
import multiprocessing
import time

import psutil

from tasktop.monitor import ProcessSampler
from tasktop.platform import PsutilPlatform


def dummy_worker(duration: float = 30.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def get_current_memory_mb() -> float:
    """Get current process memory usage in MB."""
    return psutil.Process().memory_info().rss / (1024 * 1024)


class TestBoundedState:
    """State-size verification suite tests."""

    def test_previous_ticks_track_live_processes(self):
        """
        Test that exited processes are dropped from the baseline.

        After children exit, their PIDs must leave the sampler's mapping on
        the next cycle instead of accumulating.
        """
        sampler = ProcessSampler(PsutilPlatform())
        children = [multiprocessing.Process(target=dummy_worker, args=(30.0,)) for _ in range(20)]
        for p in children:
            p.start()

        try:
            sampler.sample()
            assert all(p.pid in sampler._prev_proc_ticks for p in children)

            for p in children:
                p.terminate()
            for p in children:
                p.join(timeout=1.0)

            rows = sampler.sample()
            assert set(sampler._prev_proc_ticks) == {row.pid for row in rows}
            assert len(sampler._prev_proc_ticks) == sampler.last_process_count()
        finally:
            for p in children:
                if p.is_alive():
                    p.kill()
                    p.join(timeout=1.0)

    def test_sampler_memory_stability(self):
        """
        Test that repeated sampling doesn't leak memory.

        Runs many cycles back to back and allows a small allowance for
        interpreter noise.
        """
        gc.collect()
        sampler = ProcessSampler(PsutilPlatform())
        sampler.sample()
        initial_memory = get_current_memory_mb()

        for _ in range(100):
            rows = sampler.sample()
            _ = len(rows)

        gc.collect()
        memory_delta = get_current_memory_mb() - initial_memory

        max_delta_mb = 5.0
        assert memory_delta < max_delta_mb, (
            f"Memory increased by {memory_delta:.2f}MB, expected < {max_delta_mb}MB over 100 samples"
        )
