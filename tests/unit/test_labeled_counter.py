"""
Unit tests for labeled counters and their ALL rollup.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from shuffle_metrics.metrics import (
    STORAGE_HOST_LABEL_ALL,
    InvalidIncrementError,
    LabelCardinalityError,
    LabeledCounter,
    MetricsError,
    ReservedLabelError,
)

TAG = "GRPC,ss_v5"


def _remote_counter() -> LabeledCounter:
    return LabeledCounter("total_hadoop_write_data", ("tags", "storage_host"))


class TestScalarCounter:
    """Counters without labels."""

    def test_starts_at_zero(self):
        """get() creates a zero-valued series."""
        counter = LabeledCounter("total_write_data")
        assert counter.get() == 0.0
        assert len(counter) == 1

    def test_increment(self):
        """inc() defaults to one and accepts larger deltas."""
        counter = LabeledCounter("total_write_data")
        counter.inc()
        counter.inc((), 4)
        assert counter.get() == 5.0

    def test_no_rollup_without_host_label(self):
        """Only families with a host label keep an ALL series."""
        counter = LabeledCounter("requests", ("tags",))
        counter.inc((TAG,), 3)
        assert not counter.has_rollup
        assert counter.series() == [((TAG,), 3.0)]


class TestRollup:
    """ALL aggregate maintenance."""

    def test_increment_updates_host_and_all(self):
        """A per-host increment also lands in the ALL series."""
        counter = _remote_counter()
        counter.inc((TAG, "h1"), 1000)
        counter.inc((TAG, "h1"), 500)
        counter.inc((TAG, "h2"), 2000)

        assert counter.get((TAG, "h1")) == 1500.0
        assert counter.get((TAG, "h2")) == 2000.0
        assert counter.get((TAG, STORAGE_HOST_LABEL_ALL)) == 3500.0

    def test_zero_increment_creates_series(self):
        """inc(..., 0) pre-populates the host and ALL series."""
        counter = _remote_counter()
        counter.inc((TAG, "hdfs1"), 0)

        series = dict(counter.series())
        assert series == {(TAG, "hdfs1"): 0.0, (TAG, STORAGE_HOST_LABEL_ALL): 0.0}

    def test_direct_all_increment_rejected(self):
        """ALL is reserved for the rollup and cannot be written as a host."""
        counter = _remote_counter()
        counter.inc((TAG, "hdfs1"), 3)

        with pytest.raises(ReservedLabelError):
            counter.inc((TAG, STORAGE_HOST_LABEL_ALL), 7)

        assert dict(counter.series()) == {
            (TAG, "hdfs1"): 3.0,
            (TAG, STORAGE_HOST_LABEL_ALL): 3.0,
        }

    def test_all_allowed_without_host_label(self):
        """Families without a host label treat ALL as an ordinary value."""
        counter = LabeledCounter("grpc_total", ("tags",))
        counter.inc((STORAGE_HOST_LABEL_ALL,), 2)
        assert counter.series() == [((STORAGE_HOST_LABEL_ALL,), 2.0)]

    def test_series_in_creation_order(self):
        """series() lists tuples in the order they were first referenced."""
        counter = _remote_counter()
        counter.inc((TAG, "b"))
        counter.inc((TAG, "a"))
        assert [labels for labels, _ in counter.series()] == [
            (TAG, "b"),
            (TAG, STORAGE_HOST_LABEL_ALL),
            (TAG, "a"),
        ]

    def test_clear(self):
        """clear() drops every series."""
        counter = _remote_counter()
        counter.inc((TAG, "h1"), 10)
        counter.clear()
        assert counter.series() == []
        assert counter.get((TAG, "h1")) == 0.0


class TestContractViolations:
    """Rejected inputs."""

    def test_negative_delta_rejected(self):
        """Negative deltas raise and leave the counter untouched."""
        counter = _remote_counter()
        counter.inc((TAG, "h1"), 5)

        with pytest.raises(InvalidIncrementError):
            counter.inc((TAG, "h1"), -1)

        assert counter.get((TAG, "h1")) == 5.0
        assert counter.get((TAG, STORAGE_HOST_LABEL_ALL)) == 5.0

    @pytest.mark.parametrize("delta", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_delta_rejected(self, delta):
        """NaN and infinite deltas raise and leave host and ALL untouched."""
        counter = _remote_counter()
        counter.inc((TAG, "h1"), 5)

        with pytest.raises(InvalidIncrementError):
            counter.inc((TAG, "h1"), delta)

        assert counter.get((TAG, "h1")) == 5.0
        assert counter.get((TAG, STORAGE_HOST_LABEL_ALL)) == 5.0

    def test_reserved_label_is_metrics_error(self):
        with pytest.raises(MetricsError):
            _remote_counter().inc((TAG, STORAGE_HOST_LABEL_ALL))

    def test_negative_delta_is_value_error(self):
        """InvalidIncrementError is also a ValueError."""
        counter = LabeledCounter("c")
        with pytest.raises(ValueError):
            counter.inc((), -0.5)

    def test_wrong_label_arity(self):
        """Label values must match the schema."""
        counter = _remote_counter()
        with pytest.raises(LabelCardinalityError):
            counter.inc(("only-one",))
        with pytest.raises(LabelCardinalityError):
            counter.get()


class TestConcurrency:
    """Concurrent writers."""

    def test_single_cell_per_tuple_under_race(self):
        """Racing first use of one tuple creates exactly one cell."""
        counter = _remote_counter()
        barrier = threading.Barrier(8)
        cells = []
        lock = threading.Lock()

        def resolve() -> None:
            barrier.wait()
            cell = counter.labels(TAG, "racy-host")
            with lock:
                cells.append(cell)

        threads = [threading.Thread(target=resolve) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len({id(c) for c in cells}) == 1
        assert len(counter) == 1

    def test_all_equals_sum_after_concurrent_increments(self):
        """ALL equals the sum of hosts once concurrent writers finish."""
        counter = _remote_counter()
        hosts = [f"host-{i}" for i in range(5)]

        def writer(n: int) -> None:
            for _ in range(200):
                counter.inc((TAG, hosts[n % len(hosts)]), n + 1)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(writer, range(16)))

        per_host = {labels[1]: value for labels, value in counter.series()}
        total = per_host.pop(STORAGE_HOST_LABEL_ALL)
        assert total == sum(per_host.values())
        assert total == sum(200 * (n + 1) for n in range(16))

    def test_reader_never_sees_partial_rollup(self):
        """A concurrent reader always sees ALL == sum(hosts)."""
        counter = _remote_counter()
        stop = threading.Event()
        mismatches = []

        def writer() -> None:
            while not stop.is_set():
                counter.inc((TAG, "h1"), 1)
                counter.inc((TAG, "h2"), 2)

        def reader() -> None:
            for _ in range(500):
                series = dict(counter.series())
                aggregate = series.pop((TAG, STORAGE_HOST_LABEL_ALL), 0.0)
                if aggregate != sum(series.values()):
                    mismatches.append((aggregate, series))

        writers = [threading.Thread(target=writer) for _ in range(3)]
        for t in writers:
            t.start()
        reader()
        stop.set()
        for t in writers:
            t.join()

        assert mismatches == []
