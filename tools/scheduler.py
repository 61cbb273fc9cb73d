"""
Deferred, cancellable invocation of the Harmonic Mapper engine.

An interactive caller submits a configuration every time a control moves.
Only the newest submission matters: submitting again cancels every earlier
ticket, and a cancelled ticket's result is dropped instead of delivered.

Usage:
    from tools.scheduler import ComputeScheduler

    with ComputeScheduler() as sched:
        sched.submit(state_a, on_result)      # superseded, never delivered
        ticket = sched.submit(state_b, on_result)
        result = ticket.wait(timeout=5)
"""

import sys
import threading
from multiprocessing.pool import ThreadPool
from pathlib import Path

_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(_ROOT))
from harmonic_mapper import compute


class Ticket:
    """Handle for one submission. Acts as its own cancellation token."""

    def __init__(self, generation, state):
        self.generation = generation
        self.state = state
        self._cancelled = threading.Event()
        self._done = threading.Event()
        self._result = None
        self._error = None
        self.delivery = None

    @property
    def cancelled(self):
        return self._cancelled.is_set()

    @property
    def done(self):
        return self._done.is_set()

    def cancel(self):
        self._cancelled.set()
        self._done.set()

    def _finish(self, result=None, error=None):
        if self.cancelled:
            return False
        self._result, self._error = result, error
        self._done.set()
        return True

    def wait(self, timeout=None):
        """Block until finished. Returns None if the ticket was cancelled;
        re-raises whatever the engine raised."""
        if not self._done.wait(timeout):
            raise TimeoutError(f"ticket {self.generation} still running after {timeout}s")
        if self.cancelled:
            return None
        if self._error is not None:
            raise self._error
        return self._result


class ComputeScheduler:
    """Runs ``compute`` off the caller's thread, last configuration wins."""

    def __init__(self, n_workers=1, compute_fn=compute):
        self.compute_fn = compute_fn
        self._pool = ThreadPool(processes=n_workers)
        self._lock = threading.RLock()
        self._generation = 0
        self._pending = []

    def submit(self, state, callback=None):
        with self._lock:
            for old in self._pending:
                old.cancel()
            self._generation += 1
            ticket = Ticket(self._generation, state)
            self._pending = [ticket]

        def run():
            if ticket.cancelled:
                return
            try:
                result = self.compute_fn(state)
            except Exception as e:
                ticket._finish(error=e)
                return
            # Superseded check and delivery happen under the submit lock.
            # Callback errors propagate through ticket.delivery, not wait().
            with self._lock:
                if ticket.cancelled or ticket.generation != self._generation:
                    return
                try:
                    if callback is not None:
                        callback(result)
                finally:
                    ticket._finish(result=result)

        ticket.delivery = self._pool.apply_async(run)
        return ticket

    @property
    def latest(self):
        with self._lock:
            return self._pending[-1] if self._pending else None

    def close(self):
        with self._lock:
            for t in self._pending:
                if not t.done:
                    t.cancel()
            self._pending = []
        self._pool.close()
        self._pool.join()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
