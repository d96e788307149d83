"""Verification Test: Chaos Monkey - Random process termination resilience.

Processes are spawned and killed while the sampler runs against the real
system. A process disappearing mid-scan must never break ``sample()``.
"""

import multiprocessing
import random
import time

from tasktop.monitor import ProcessSampler
from tasktop.platform import PsutilPlatform


def dummy_worker(duration: float = 60.0) -> None:
    """A dummy worker process that sleeps for a given duration."""
    try:
        time.sleep(duration)
    except (KeyboardInterrupt, SystemExit):
        pass


def _cleanup(processes: list[multiprocessing.Process]) -> None:
    for p in processes:
        if p.is_alive():
            p.terminate()
    for p in processes:
        p.join(timeout=1.0)


class TestChaosMonkey:
    """Chaos Monkey verification suite tests."""

    def test_sampler_survives_process_termination(self):
        """
        Test that sampling doesn't fail when processes die between samples.

        Killed children must simply drop out of the next sample.
        """
        processes = []
        for _ in range(30):
            p = multiprocessing.Process(target=dummy_worker, args=(60.0,))
            p.start()
            processes.append(p)

        sampler = ProcessSampler(PsutilPlatform())

        try:
            first = sampler.sample()
            first_pids = {row.pid for row in first}
            assert all(p.pid in first_pids for p in processes)

            victims = random.sample(processes, 15)
            for p in victims:
                p.terminate()
                time.sleep(0.02)
            for p in victims:
                p.join(timeout=1.0)

            for _ in range(3):
                rows = sampler.sample()
                assert sampler.last_process_count() == len(rows)

            remaining = {row.pid for row in rows}
            for p in processes:
                if p not in victims:
                    assert p.pid in remaining
        finally:
            _cleanup(processes)

    def test_rapid_process_creation_and_termination(self):
        """
        Test sampler stability during rapid process churn.

        Processes are created and destroyed between and during samples.
        """
        sampler = ProcessSampler(PsutilPlatform())
        processes = []
        samples = 0

        try:
            start_time = time.time()
            while time.time() - start_time < 3.0:
                for _ in range(5):
                    p = multiprocessing.Process(target=dummy_worker, args=(10.0,))
                    p.start()
                    processes.append(p)

                alive = [p for p in processes if p.is_alive()]
                if len(alive) > 10:
                    for p in random.sample(alive, 3):
                        p.terminate()

                rows = sampler.sample()
                samples += 1
                assert len(rows) > 0
                assert all(row.cpu_percent >= 0.0 for row in rows)
                time.sleep(0.1)

            assert samples >= 5
        finally:
            _cleanup(processes)

    def test_zombie_process_handling(self):
        """
        Test that zombies are listed rather than crashing the sampler.

        A finished child that hasn't been joined yet is a zombie on POSIX.
        """
        sampler = ProcessSampler(PsutilPlatform())
        p = multiprocessing.Process(target=dummy_worker, args=(0.1,))
        p.start()

        try:
            time.sleep(0.5)
            for _ in range(3):
                rows = sampler.sample()
                assert isinstance(rows, list)
                assert len(rows) > 0
        finally:
            p.join(timeout=1.0)

    def test_ranking_holds_on_live_system(self):
        """Live output obeys the ranking order."""
        sampler = ProcessSampler(PsutilPlatform())
        sampler.sample()
        sum(i * i for i in range(500_000))
        rows = sampler.sample()

        keys = [(-row.cpu_percent, row.pid) for row in rows]
        assert keys == sorted(keys)
