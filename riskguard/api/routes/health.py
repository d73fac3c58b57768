from __future__ import annotations

from fastapi import APIRouter, Request

from riskguard.adapters.kv.upstash import UpstashKeyValueStore

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(request: Request) -> dict:
    """Liveness probe.

    Also reports which key-value backend the process selected at startup, so
    a deployment silently running on the per-process store is easy to spot.
    """
    store = request.app.state.rate_limit_service.store
    backend = "upstash" if isinstance(store, UpstashKeyValueStore) else "in_memory"
    return {"status": "ok", "kv_backend": backend}
