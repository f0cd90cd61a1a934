"""
Unit tests for gauges.
"""

import threading
from concurrent.futures import ThreadPoolExecutor

from shuffle_metrics.metrics import Gauge, LabeledGauge


class TestGauge:
    """Single-value gauge."""

    def test_set_inc_dec(self):
        gauge = Gauge("in_flush_buffer_size")
        gauge.set(10)
        gauge.inc(5)
        gauge.dec(3)
        assert gauge.get() == 12.0

    def test_can_go_negative(self):
        """Gauges have no monotonicity requirement."""
        gauge = Gauge("g")
        gauge.dec(4)
        assert gauge.get() == -4.0

    def test_reset(self):
        gauge = Gauge("g")
        gauge.inc(9)
        gauge.reset()
        assert gauge.get() == 0.0

    def test_concurrent_deltas_sum_exactly(self):
        """Interleaved inc/dec from many threads lose no update."""
        gauge = Gauge("in_flush_buffer_size")
        gauge.set(0)

        expected = 0
        deltas = []
        for i in range(1, 5):
            cur = i * i
            if i % 2 == 0:
                deltas.append(cur)
                expected += cur
            else:
                deltas.append(-cur)
                expected -= cur

        def apply(delta: int) -> None:
            if delta >= 0:
                gauge.inc(delta)
            else:
                gauge.dec(-delta)

        with ThreadPoolExecutor(max_workers=3) as pool:
            list(pool.map(apply, deltas))

        assert gauge.get() == expected == 10

    def test_many_threads_many_updates(self):
        """Final value is initial plus every applied delta."""
        gauge = Gauge("buffered_data_size")
        gauge.set(100)

        def worker(n: int) -> None:
            for _ in range(1000):
                gauge.inc(n)
                gauge.dec(1)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(1, 9)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert gauge.get() == 100 + sum(1000 * (n - 1) for n in range(1, 9))


class TestLabeledGauge:
    """Gauge family with declared series."""

    def test_declare_creates_zero_series(self):
        gauge = LabeledGauge("grpc_open", ("tags",))
        gauge.declare(("GRPC",))
        assert gauge.series() == [(("GRPC",), 0.0)]

    def test_inc_dec_set(self):
        gauge = LabeledGauge("grpc_open", ("tags",))
        gauge.inc(("GRPC",), 3)
        gauge.dec(("GRPC",), 1)
        assert gauge.get(("GRPC",)) == 2.0
        gauge.set(("GRPC",), 42)
        assert gauge.get(("GRPC",)) == 42.0
