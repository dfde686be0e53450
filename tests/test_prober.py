"""Test the concurrent prober."""
import threading
import time

import pytest

from linkfinder.config import ProbeOptions
from linkfinder.errors import ConfigurationError
from linkfinder.models import Candidate, CandidateTier, ConventionKind, ProbeOutcome
from linkfinder.probing import probe

from conftest import BASE_URL, FakeExists


def make_candidates(count, prefix='AB100', seed_id='AB100'):
    return [
        Candidate(
            locator=f'{BASE_URL}/S/{prefix}-{index:03d}.jpg',
            convention_kind=ConventionKind.SEQUENCE,
            convention_name='still_sequence',
            source_seed_id=seed_id,
            tier=CandidateTier.DERIVED,
            sequence_index=index,
            date_offset_days=0,
            prefix_value=prefix,
        )
        for index in range(1, count + 1)
    ]


class ConcurrencyCounter:
    """exists() that records the peak number of simultaneous calls."""

    def __init__(self, latency=0.02):
        self.latency = latency
        self.active = 0
        self.peak = 0
        self._lock = threading.Lock()

    def __call__(self, locator, timeout):
        with self._lock:
            self.active += 1
            self.peak = max(self.peak, self.active)
        time.sleep(self.latency)
        with self._lock:
            self.active -= 1
        return False


class TestProbeBasics:

    def test_hits_in_candidate_order(self):
        candidates = make_candidates(10)
        found = [candidates[7].locator, candidates[2].locator, candidates[4].locator]
        result = probe(candidates, FakeExists(found=found), ProbeOptions(concurrency=4))
        assert [h.locator for h in result.hits] == [
            candidates[2].locator, candidates[4].locator, candidates[7].locator,
        ]
        assert all(h.outcome == ProbeOutcome.FOUND for h in result.hits)

    def test_every_candidate_probed_once(self):
        candidates = make_candidates(30)
        exists = FakeExists()
        result = probe(candidates, exists, ProbeOptions(concurrency=8))
        assert sorted(exists.calls) == sorted(c.locator for c in candidates)
        assert result.diagnostics.probed_count == 30
        assert result.diagnostics.not_found_count == 30

    def test_boolean_checks(self):
        candidates = make_candidates(3)
        target = candidates[1].locator
        result = probe(candidates, lambda locator, timeout: locator == target)
        assert [h.locator for h in result.hits] == [target]

    def test_empty_input(self):
        result = probe([], FakeExists())
        assert result.hits == []
        assert result.diagnostics.total_candidates == 0
        assert not result.diagnostics.truncated

    def test_same_hits_at_any_concurrency(self):
        candidates = make_candidates(25)
        found = [c.locator for c in candidates[::3]]
        serial = probe(candidates, FakeExists(found=found), concurrency=1)
        parallel = probe(candidates, FakeExists(found=found, latency=0.005), concurrency=8)
        assert [h.locator for h in serial.hits] == [h.locator for h in parallel.hits]


class TestConcurrencyBound:

    def test_peak_never_exceeds_limit(self):
        exists = ConcurrencyCounter()
        probe(make_candidates(20), exists, concurrency=3)
        assert 1 <= exists.peak <= 3

    def test_serial(self):
        exists = ConcurrencyCounter(latency=0.005)
        probe(make_candidates(5), exists, concurrency=1)
        assert exists.peak == 1

    def test_zero_concurrency_rejected(self):
        with pytest.raises(ConfigurationError):
            probe(make_candidates(3), FakeExists(), concurrency=0)


class TestFailures:

    def test_errors_and_timeouts_counted_separately(self):
        candidates = make_candidates(6)
        exists = FakeExists(
            found=[candidates[0].locator],
            errors=[candidates[1].locator, candidates[2].locator],
            timeouts=[candidates[3].locator],
        )
        result = probe(candidates, exists, concurrency=2)
        diag = result.diagnostics
        assert diag.verified_count == 1
        assert diag.error_count == 2
        assert diag.timed_out_count == 1
        assert diag.not_found_count == 2
        assert diag.unverifiable_count == 3
        assert not diag.truncated

    def test_failures_are_not_hits(self):
        candidates = make_candidates(2)
        exists = FakeExists(errors=[candidates[0].locator], timeouts=[candidates[1].locator])
        result = probe(candidates, exists)
        assert result.hits == []
        assert result.outcomes[candidates[0].locator] == ProbeOutcome.ERROR
        assert result.outcomes[candidates[1].locator] == ProbeOutcome.TIMEOUT

    def test_slow_check_counts_as_timeout(self):
        candidates = make_candidates(1)
        exists = FakeExists(found=[candidates[0].locator], latency=0.1)
        result = probe(candidates, exists, per_request_timeout=0.01)
        assert result.hits == []
        assert result.diagnostics.timed_out_count == 1


class TestDeadlineAndCancel:

    def test_deadline_truncates(self):
        candidates = make_candidates(50)
        exists = FakeExists(found=[c.locator for c in candidates], latency=0.02)
        started = time.monotonic()
        result = probe(candidates, exists, concurrency=1, overall_deadline=0.1)
        elapsed = time.monotonic() - started

        assert result.diagnostics.truncated
        assert result.diagnostics.verified_count < 50
        assert result.diagnostics.probed_count < 50
        assert elapsed < 0.8
        # Whatever was verified is still reported
        assert len(result.hits) == result.diagnostics.verified_count

    def test_generous_deadline_not_truncated(self):
        result = probe(make_candidates(5), FakeExists(), overall_deadline=30.0)
        assert not result.diagnostics.truncated
        assert result.diagnostics.probed_count == 5

    def test_cancel_event(self):
        candidates = make_candidates(50)
        cancel = threading.Event()
        cancel.set()
        result = probe(candidates, FakeExists(latency=0.01), concurrency=1, cancel_event=cancel)
        assert result.diagnostics.truncated
        assert result.diagnostics.probed_count < 50

    def test_cancel_midway(self):
        candidates = make_candidates(100)
        cancel = threading.Event()
        timer = threading.Timer(0.05, cancel.set)
        timer.start()
        try:
            result = probe(candidates, FakeExists(latency=0.01), concurrency=2, cancel_event=cancel)
        finally:
            timer.cancel()
        assert result.diagnostics.truncated
        assert result.diagnostics.probed_count < 100

    def test_rate_limit_spaces_checks(self):
        started = time.monotonic()
        probe(make_candidates(4), FakeExists(), concurrency=1, min_interval=0.05)
        assert time.monotonic() - started >= 0.18


class TestShortCircuit:

    def test_disabled_by_default(self):
        candidates = make_candidates(20)
        exists = FakeExists()
        result = probe(candidates, exists, concurrency=1)
        assert len(exists.calls) == 20
        assert result.diagnostics.skipped_count == 0

    def test_stops_after_consecutive_misses(self):
        candidates = make_candidates(40)
        exists = FakeExists(found=[c.locator for c in candidates[:5]])
        result = probe(candidates, exists, concurrency=1, stop_after_misses=3)
        # indices 1-5 found, 6-8 missed, 9-40 skipped
        assert len(exists.calls) == 8
        assert result.diagnostics.skipped_count == 32
        assert result.diagnostics.verified_count == 5
        assert not result.diagnostics.truncated

    def test_groups_are_independent(self):
        first = make_candidates(10, prefix='AB100')
        second = make_candidates(10, prefix='20250308')
        exists = FakeExists(found=[c.locator for c in second])
        result = probe(first + second, exists, concurrency=1, stop_after_misses=2)
        assert result.diagnostics.verified_count == 10
        assert result.diagnostics.skipped_count == 8


class HangingExists:
    """exists() that blocks on chosen locators until released, ignoring its timeout."""

    def __init__(self, hang=(), found=()):
        self.hang = set(hang)
        self.found = set(found)
        self.release = threading.Event()

    def __call__(self, locator, timeout):
        if locator in self.hang:
            self.release.wait(5.0)
        return locator in self.found


class TestPerRequestTimeout:

    def test_hanging_check_is_cut_off(self):
        candidates = make_candidates(2)
        exists = HangingExists(hang=[c.locator for c in candidates])
        started = time.monotonic()
        try:
            result = probe(candidates, exists, ProbeOptions(concurrency=2, per_request_timeout=0.1))
            elapsed = time.monotonic() - started
        finally:
            exists.release.set()

        assert elapsed < 0.8
        assert result.hits == []
        assert result.diagnostics.timed_out_count == 2
        assert not result.diagnostics.truncated

    def test_worker_continues_after_hang(self):
        candidates = make_candidates(4)
        exists = HangingExists(hang=[candidates[0].locator],
                               found=[c.locator for c in candidates[1:]])
        try:
            result = probe(candidates, exists, concurrency=1, per_request_timeout=0.1)
        finally:
            exists.release.set()

        assert result.outcomes[candidates[0].locator] == ProbeOutcome.TIMEOUT
        assert [h.locator for h in result.hits] == [c.locator for c in candidates[1:]]
        assert result.diagnostics.probed_count == 4
