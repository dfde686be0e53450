"""Concurrent existence checks over a candidate list.

A fixed pool of workers drains a shared queue of candidates and asks the
injected ``exists`` callable whether each locator resolves. The prober knows
nothing about HTTP: ``exists(locator, timeout)`` returns a ProbeOutcome (or a
bool) and may raise; timeouts and errors are counted, never propagated.
A check still running after per_request_timeout is recorded as TIMEOUT and
left behind, so a hanging ``exists`` cannot hold a worker.

Usage:
    result = probe(candidates, http_exists, ProbeOptions(concurrency=8))
    result.hits          # VerifiedHit list, in candidate order
    result.diagnostics   # SessionDiagnostics
"""
import logging
import queue
import threading
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from concurrent.futures import TimeoutError as FuturesTimeoutError
from dataclasses import asdict, dataclass, field, replace
from typing import Callable, Dict, List, Optional, Sequence, Set, Tuple, Union

import requests

from ..config import ProbeOptions
from ..models import Candidate, ProbeOutcome, VerifiedHit

logger = logging.getLogger(__name__)

ExistsCheck = Callable[[str, float], Union[ProbeOutcome, bool]]

# How often the coordinator wakes up to look at the cancel signal
POLL_INTERVAL = 0.05


@dataclass
class SessionDiagnostics:
    """Counters describing how complete a probing session was"""
    total_candidates: int = 0
    probed_count: int = 0
    verified_count: int = 0
    not_found_count: int = 0
    timed_out_count: int = 0     # Could not verify: check ran out of time
    error_count: int = 0         # Could not verify: transport/other failure
    skipped_count: int = 0       # Dropped by the consecutive-miss short-circuit
    truncated: bool = False
    elapsed_seconds: float = 0.0

    @property
    def unverifiable_count(self) -> int:
        return self.timed_out_count + self.error_count

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ProbeResult:
    """Hits plus bookkeeping from one probe() call"""
    hits: List[VerifiedHit] = field(default_factory=list)
    outcomes: Dict[str, ProbeOutcome] = field(default_factory=dict)  # locator -> outcome
    diagnostics: SessionDiagnostics = field(default_factory=SessionDiagnostics)


def _coerce_outcome(raw: Union[ProbeOutcome, bool, None]) -> ProbeOutcome:
    if isinstance(raw, ProbeOutcome):
        return raw
    if raw is True:
        return ProbeOutcome.FOUND
    if raw is False or raw is None:
        return ProbeOutcome.NOT_FOUND
    return ProbeOutcome.ERROR


class _SequenceTracker:
    """
    Consecutive-miss short-circuit for numbered sequences.

    A sequence (seed, prefix) is considered ended once ``limit`` consecutive
    indices above its highest hit have come back NOT_FOUND; later indices of
    that sequence are skipped. Disabled when limit is None.
    """

    def __init__(self, limit: Optional[int]):
        self.limit = limit
        self._lock = threading.Lock()
        self._misses: Dict[Tuple[str, Optional[str]], Set[int]] = {}
        self._max_found: Dict[Tuple[str, Optional[str]], int] = {}
        self._closed_after: Dict[Tuple[str, Optional[str]], int] = {}

    def should_skip(self, candidate: Candidate) -> bool:
        if self.limit is None or candidate.sequence_index is None:
            return False
        with self._lock:
            closed_after = self._closed_after.get(candidate.group_key)
            return closed_after is not None and candidate.sequence_index > closed_after

    def record(self, candidate: Candidate, outcome: ProbeOutcome) -> None:
        if self.limit is None or candidate.sequence_index is None:
            return
        key = candidate.group_key
        index = candidate.sequence_index
        with self._lock:
            if outcome == ProbeOutcome.FOUND:
                self._max_found[key] = max(index, self._max_found.get(key, index))
                # A hit past the cut-off reopens the sequence
                if self._closed_after.get(key, index) < index:
                    del self._closed_after[key]
                return
            if outcome != ProbeOutcome.NOT_FOUND:
                return

            misses = self._misses.setdefault(key, set())
            misses.add(index)
            lo = index
            while lo - 1 in misses:
                lo -= 1
            hi = index
            while hi + 1 in misses:
                hi += 1

            if hi - lo + 1 >= self.limit and lo > self._max_found.get(key, lo - 1):
                cutoff = lo + self.limit - 1
                current = self._closed_after.get(key)
                self._closed_after[key] = cutoff if current is None else min(current, cutoff)


class _CheckRunner:
    """
    One worker's thread for existence checks.

    Each check runs as a future on a single-thread executor and is waited on
    for at most the per-request timeout. A check still running after that is
    abandoned together with its executor, and the next check gets a fresh one.
    """

    def __init__(self, exists: ExistsCheck):
        self.exists = exists
        self._executor = self._new_executor()

    @staticmethod
    def _new_executor() -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix='linkfinder-check')

    def run(self, locator: str, timeout: float) -> Union[ProbeOutcome, bool]:
        future = self._executor.submit(self.exists, locator, timeout)
        try:
            return future.result(timeout=timeout)
        except FuturesTimeoutError:
            if not future.done():
                logger.debug(f"Abandoning hung check after {timeout}s: {locator}")
                self._executor.shutdown(wait=False, cancel_futures=True)
                self._executor = self._new_executor()
            raise

    def close(self) -> None:
        self._executor.shutdown(wait=False, cancel_futures=True)


class Prober:
    """Runs one batch of existence checks under a bounded worker pool."""

    def __init__(self, exists: ExistsCheck, options: ProbeOptions,
                 cancel_event: Optional[threading.Event] = None):
        self.exists = exists
        self.options = options.validate()
        self.cancel_event = cancel_event

        self._queue: 'queue.Queue[Candidate]' = queue.Queue()
        self._stop = threading.Event()
        self._lock = threading.Lock()
        self._closed = False
        self._tracker = _SequenceTracker(options.stop_after_misses)
        self._hits: List[VerifiedHit] = []
        self._outcomes: Dict[str, ProbeOutcome] = {}
        self._skipped = 0

    def _check(self, candidate: Candidate, runner: _CheckRunner) -> ProbeOutcome:
        """Run one existence check, mapping every failure to an outcome."""
        timeout = self.options.per_request_timeout
        started = time.monotonic()
        try:
            raw = runner.run(candidate.locator, timeout)
        except (FuturesTimeoutError, TimeoutError, requests.Timeout):
            logger.debug(f"Timed out: {candidate.locator}")
            return ProbeOutcome.TIMEOUT
        except Exception as e:
            # exists() is caller-supplied; a failing check must not end the session
            logger.debug(f"Check failed for {candidate.locator}: {e}")
            return ProbeOutcome.ERROR

        if time.monotonic() - started > timeout:
            logger.debug(f"Check overran {timeout}s: {candidate.locator}")
            return ProbeOutcome.TIMEOUT
        return _coerce_outcome(raw)

    def _record(self, candidate: Candidate, outcome: ProbeOutcome) -> None:
        with self._lock:
            if self._closed:
                return
            self._outcomes[candidate.locator] = outcome
            if outcome == ProbeOutcome.FOUND:
                self._hits.append(VerifiedHit(candidate=candidate, outcome=outcome))
        self._tracker.record(candidate, outcome)
        logger.debug(f"{outcome.value:>9}  {candidate.locator}")

    def _worker(self) -> None:
        interval = self.options.min_interval
        runner = _CheckRunner(self.exists)
        try:
            while not self._stop.is_set():
                try:
                    candidate = self._queue.get_nowait()
                except queue.Empty:
                    return

                if self._tracker.should_skip(candidate):
                    with self._lock:
                        if not self._closed:
                            self._skipped += 1
                    continue

                # Rate limit: wait() returns True if we were stopped meanwhile
                if interval and self._stop.wait(interval):
                    return

                self._record(candidate, self._check(candidate, runner))
        finally:
            runner.close()

    def _should_stop(self, deadline: Optional[float]) -> bool:
        if self.cancel_event is not None and self.cancel_event.is_set():
            logger.warning("Probe session cancelled")
            return True
        if deadline is not None and time.monotonic() >= deadline:
            logger.warning(f"Probe session hit its {self.options.overall_deadline}s deadline")
            return True
        return False

    def run(self, candidates: Sequence[Candidate]) -> ProbeResult:
        started = time.monotonic()
        diagnostics = SessionDiagnostics(total_candidates=len(candidates))
        if not candidates:
            return ProbeResult(diagnostics=diagnostics)

        for candidate in candidates:
            self._queue.put(candidate)

        deadline = None
        if self.options.overall_deadline is not None:
            deadline = started + self.options.overall_deadline
        poll = self.cancel_event is not None or deadline is not None

        workers = min(self.options.concurrency, len(candidates))
        executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix='linkfinder-probe')
        futures = [executor.submit(self._worker) for _ in range(workers)]

        truncated = False
        try:
            pending = set(futures)
            while pending:
                if self._should_stop(deadline):
                    truncated = True
                    break
                timeout = None
                if poll:
                    timeout = POLL_INTERVAL
                    if deadline is not None:
                        timeout = max(0.0, min(timeout, deadline - time.monotonic()))
                done, pending = wait(pending, timeout=timeout, return_when=FIRST_EXCEPTION)
                for future in done:
                    # Worker bugs are programmer errors: surface them
                    future.result()
        finally:
            self._stop.set()
            with self._lock:
                self._closed = True
            executor.shutdown(wait=not truncated, cancel_futures=True)

        # Keep hits in candidate order regardless of completion order
        position = {c.locator: i for i, c in enumerate(candidates)}
        hits = sorted(self._hits, key=lambda h: position[h.locator])

        counts = {outcome: 0 for outcome in ProbeOutcome}
        for outcome in self._outcomes.values():
            counts[outcome] += 1

        diagnostics.probed_count = len(self._outcomes)
        diagnostics.verified_count = len(hits)
        diagnostics.not_found_count = counts[ProbeOutcome.NOT_FOUND]
        diagnostics.timed_out_count = counts[ProbeOutcome.TIMEOUT]
        diagnostics.error_count = counts[ProbeOutcome.ERROR]
        diagnostics.skipped_count = self._skipped
        diagnostics.truncated = truncated
        diagnostics.elapsed_seconds = round(time.monotonic() - started, 3)

        logger.info(
            f"Probed {diagnostics.probed_count}/{diagnostics.total_candidates} candidates: "
            f"{diagnostics.verified_count} found, {diagnostics.not_found_count} missing, "
            f"{diagnostics.unverifiable_count} unverifiable"
            + (" (truncated)" if truncated else "")
        )
        return ProbeResult(hits=hits, outcomes=dict(self._outcomes), diagnostics=diagnostics)


def probe(
    candidates: Sequence[Candidate],
    exists: ExistsCheck,
    options: Optional[ProbeOptions] = None,
    cancel_event: Optional[threading.Event] = None,
    **overrides,
) -> ProbeResult:
    """
    Check which candidates resolve.

    Args:
        candidates: Unique candidates to check, in priority order
        exists: Callable(locator, timeout) -> ProbeOutcome | bool
        options: Session options; keyword overrides (concurrency=...,
                 overall_deadline=...) are applied on top
        cancel_event: Optional external cancellation signal

    Returns:
        ProbeResult; only configuration errors raise (ConfigurationError)
    """
    options = options or ProbeOptions()
    if overrides:
        options = replace(options, **overrides)
    return Prober(exists, options, cancel_event).run(candidates)
