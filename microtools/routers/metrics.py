from __future__ import annotations

from fastapi import APIRouter, Response

from microtools.observability.metrics import render_latest


router = APIRouter(tags=["Metrics"])


@router.get("/metrics", include_in_schema=False)
async def prometheus_metrics() -> Response:
    payload, content_type = render_latest()
    return Response(content=payload, media_type=content_type)
