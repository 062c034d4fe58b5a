import logging
import threading
import time

from hypeflow.agent import CycleRunner

logger = logging.getLogger("hypeflow.scheduler")


class Scheduler:
    """Runs one cycle per interval on a single loop thread, first run immediate.

    Ticks that fall due while a cycle is still running are dropped, not queued.
    """

    def __init__(self, runner: CycleRunner, interval_sec: float, max_cycles: int = 0):
        self.runner = runner
        self.interval = interval_sec
        self.max_cycles = max_cycles
        self.thread = None
        self._stop = threading.Event()
        self.ticks = 0
        self.missed = 0

    def _run(self):
        next_at = time.monotonic()
        while not self._stop.is_set():
            self.runner.trigger()
            self.ticks += 1
            if self.max_cycles and self.ticks >= self.max_cycles:
                break
            next_at += self.interval
            now = time.monotonic()
            if now > next_at:
                missed = int((now - next_at) // self.interval) + 1
                self.missed += missed
                logger.warning(f"[scheduler] cycle overran interval, skipping {missed} tick(s)")
                next_at += missed * self.interval
            self._stop.wait(max(0.0, next_at - now))

    def start(self):
        if self.thread and self.thread.is_alive():
            return
        logger.info(f"[scheduler] scheduling runs every {self.interval:g}s")
        self.thread = threading.Thread(target=self._run, daemon=True, name="SchedulerThread")
        self.thread.start()

    def stop(self):
        self._stop.set()
        if self.thread:
            self.thread.join(timeout=2)

    def join(self, timeout=None):
        if self.thread:
            self.thread.join(timeout=timeout)
