"""Retention store, ingestion log and time-range parsing."""

import threading

import pytest

from telemetryd.store import (
    BadRange,
    IngestionLog,
    MetricSample,
    RetentionStore,
    TimeRange,
    parse_range,
)


def sample(ts, cpu=1.0, mem=2.0):
    return MetricSample(ts, cpu, mem)


@pytest.fixture
def store():
    s = RetentionStore()
    for ts in (100, 200, 300, 400, 500):
        s.append(sample(ts))
    return s


# =============================================================================
# RETENTION STORE
# =============================================================================

class TestRetentionStore:

    def test_evict_trims_only_older_than_cutoff(self, store):
        assert store.evict(300) == 2
        got = store.snapshot_range(TimeRange(0, 10_000))
        assert [s.timestamp for s in got] == [300, 400, 500]

    def test_evict_everything(self, store):
        assert store.evict(10_000) == 5
        assert len(store) == 0
        assert store.evict(10_000) == 0

    def test_retention_invariant_after_eviction(self):
        s = RetentionStore()
        window = 50
        for ts in range(0, 1000, 7):
            s.append(sample(ts))
            now = ts
            s.evict(now - window)
            for kept in s.snapshot_range(TimeRange(-1, 10_000)):
                assert now - kept.timestamp <= window

    def test_range_is_inclusive_on_both_ends(self, store):
        got = store.snapshot_range(TimeRange(200, 400))
        assert [s.timestamp for s in got] == [200, 300, 400]

    def test_range_excludes_everything_outside(self, store):
        got = store.snapshot_range(TimeRange(150, 250))
        assert [s.timestamp for s in got] == [200]
        assert store.snapshot_range(TimeRange(600, 700)) == []
        assert store.snapshot_range(TimeRange(10, 20)) == []

    def test_range_matches_brute_force_filter(self):
        s = RetentionStore()
        stamps = [1, 1, 3, 3, 3, 8, 13, 21, 21, 34]
        for ts in stamps:
            s.append(sample(ts))
        for start in range(0, 36, 3):
            for end in range(start + 1, 37, 5):
                want = [t for t in stamps if start <= t <= end]
                got = [x.timestamp for x in s.snapshot_range(TimeRange(start, end))]
                assert got == want

    def test_sample_is_immutable(self):
        s = sample(1)
        with pytest.raises(AttributeError):
            s.cpu_percent = 5.0

    def test_raw_values_are_not_clamped(self):
        s = RetentionStore()
        s.append(MetricSample(1, 250.0, -3.0))
        (got,) = s.snapshot_range(TimeRange(0, 2))
        assert got.cpu_percent == 250.0
        assert got.mem_mb == -3.0


# =============================================================================
# INGESTION LOG
# =============================================================================

class TestIngestionLog:

    def test_sequence_starts_at_one(self):
        log = IngestionLog(clock=lambda: 42.0)
        assert log.append(b"abc") == 1
        (rec,) = log.snapshot()
        assert rec.sequence_id == 1
        assert rec.payload == b"abc"
        assert rec.received_at == 42.0

    def test_sequence_is_strictly_increasing_under_contention(self):
        log = IngestionLog()
        got = []
        lock = threading.Lock()

        def push():
            for _ in range(200):
                sid = log.append(b"x")
                with lock:
                    got.append(sid)

        ts = [threading.Thread(target=push) for _ in range(8)]
        for t in ts:
            t.start()
        for t in ts:
            t.join()

        assert sorted(got) == list(range(1, 1601))
        ids = [r.sequence_id for r in log.snapshot()]
        assert ids == list(range(1, 1601))

    def test_snapshot_is_a_copy(self):
        log = IngestionLog()
        log.append(b"a")
        snap = log.snapshot()
        log.append(b"b")
        assert len(snap) == 1
        assert len(log) == 2


# =============================================================================
# TIME RANGE
# =============================================================================

class TestTimeRange:

    def test_parse_valid(self):
        tr = parse_range("150", "250")
        assert (tr.start, tr.end) == (150, 250)
        assert 150 in tr and 250 in tr and 251 not in tr

    @pytest.mark.parametrize("start,end", [
        ("1000", "500"),
        ("500", "500"),
        (None, "10"),
        ("10", None),
        ("", "10"),
        ("abc", "10"),
        ("1.5", "10"),
        (" 1", "10"),
        ("1_0", "100"),
    ])
    def test_parse_rejects(self, start, end):
        with pytest.raises(BadRange):
            parse_range(start, end)

    def test_empty_range_never_constructed(self):
        with pytest.raises(BadRange):
            TimeRange(5, 5)

    def test_bad_range_is_value_error(self):
        assert issubclass(BadRange, ValueError)
