from prometheus_client import Counter, Gauge, Histogram


class GridMetrics:
    """
    Grid Reservation Engine Core Metrics Collector

    Tracks the hold lifecycle (claim → checkout → occupancy), reaper sweeps
    and state feed fan-out
    """

    def __init__(self) -> None:
        # ========== Hold Metrics ==========
        self.hold_requests = Counter(
            'grid_hold_requests_total',
            'Total hold requests',
            ['result'],  # result: created/slot_unavailable/invalid_rectangle
        )

        self.hold_duration = Histogram(
            'grid_hold_duration_seconds',
            'Hold creation processing time',
            ['result'],
            buckets=[0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
        )

        self.hold_cells = Histogram(
            'grid_hold_cells',
            'Number of cells per hold request',
            buckets=[1, 4, 16, 64, 256, 1024, 4096, 16384],
        )

        self.holds_released = Counter(
            'grid_holds_released_total',
            'Holds destroyed without conversion',
            ['reason'],  # reason: cancelled/expired
        )

        # ========== Reaper Metrics ==========
        self.reaper_sweeps = Counter(
            'grid_reaper_sweeps_total', 'Reaper sweeps executed', ['result']
        )

        self.reaper_cells_freed = Counter(
            'grid_reaper_cells_freed_total', 'Cells returned to free by the reaper'
        )

        # ========== Payment / Moderation Metrics ==========
        self.payment_events = Counter(
            'grid_payment_events_total',
            'Payment confirmation events',
            ['result'],  # result: converted/duplicate/stale
        )

        self.moderation_actions = Counter(
            'grid_moderation_actions_total', 'Moderation decisions', ['action']
        )

        self.refund_failures = Counter(
            'grid_refund_failures_total', 'Refund requests that failed (not retried)'
        )

        # ========== Feed Metrics ==========
        self.feed_subscribers = Gauge('grid_feed_subscribers', 'Connected feed subscribers')

        self.feed_deltas = Counter('grid_feed_deltas_total', 'Cell deltas published', ['state'])

    # ========== Helper Methods ==========

    def record_hold(self, *, result: str, cell_count: int, duration: float) -> None:
        self.hold_requests.labels(result=result).inc()
        self.hold_duration.labels(result=result).observe(duration)
        if cell_count:
            self.hold_cells.observe(cell_count)

    def record_reaper_sweep(self, *, result: str, cells_freed: int = 0) -> None:
        self.reaper_sweeps.labels(result=result).inc()
        if cells_freed:
            self.reaper_cells_freed.inc(cells_freed)


# Global metrics instance
metrics = GridMetrics()
