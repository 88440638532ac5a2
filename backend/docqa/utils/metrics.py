"""Prometheus metrics for ingestion, retrieval and answering."""

from prometheus_client import Counter, Histogram

answers_total = Counter(
    "docqa_answers_total",
    "Total answer streams by terminal outcome",
    ["outcome"],
)

answer_latency_ms = Histogram(
    "docqa_answer_latency_ms",
    "End-to-end answer stream latency in milliseconds",
    ["outcome"],
    buckets=[100, 250, 500, 1000, 2000, 4000, 8000, 15000, 30000, 60000],
)

first_fragment_latency_ms = Histogram(
    "docqa_first_fragment_latency_ms",
    "Time from generation start to the first streamed fragment in milliseconds",
    buckets=[50, 100, 250, 500, 1000, 2000, 4000, 8000],
)

embedding_calls_total = Counter(
    "docqa_embedding_calls_total",
    "Total embedding calls",
    ["outcome"],
)

chunks_indexed_total = Counter(
    "docqa_chunks_indexed_total",
    "Total chunks embedded and stored",
)


class PrometheusAnswerMetrics:
    """Prometheus-based answer metrics implementation."""

    def record_answer(self, outcome: str, latency_ms: float) -> None:
        """Record a finished answer stream."""
        answers_total.labels(outcome=outcome).inc()
        answer_latency_ms.labels(outcome=outcome).observe(latency_ms)

    def record_first_fragment(self, latency_ms: float) -> None:
        """Record time to first generated fragment."""
        first_fragment_latency_ms.observe(latency_ms)

    def inc_embedding_call(self, outcome: str) -> None:
        """Increment embedding call counter."""
        embedding_calls_total.labels(outcome=outcome).inc()

    def inc_chunks_indexed(self, count: int = 1) -> None:
        """Increment indexed chunk counter."""
        chunks_indexed_total.inc(count)


metrics = PrometheusAnswerMetrics()
