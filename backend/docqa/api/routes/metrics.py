"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered Prometheus metrics including:
    - docqa_answers_total{outcome}
    - docqa_answer_latency_ms{outcome}
    - docqa_first_fragment_latency_ms
    - docqa_embedding_calls_total{outcome}
    - docqa_chunks_indexed_total
    """
    metrics_output = generate_latest()
    return Response(content=metrics_output, media_type=CONTENT_TYPE_LATEST)
