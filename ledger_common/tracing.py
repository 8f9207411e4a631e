"""
Request tracing for the ledger service

A span is a named, timed unit of work that records the ordered steps taken
inside it. Spans are handed explicitly to the code they describe.
"""
import json
import logging
import time
import uuid
from typing import Dict, List, Optional
from fastapi import Request

logger = logging.getLogger(__name__)

TRACE_HEADER = "X-Trace-ID"
SPAN_HEADER = "X-Span-ID"


def _new_id(length: int) -> str:
    return uuid.uuid4().hex[:length]


class TraceSpan:
    def __init__(self, name: str, trace_id: Optional[str] = None, parent_id: Optional[str] = None):
        self.name = name
        self.span_id = _new_id(8)
        self.trace_id = trace_id or _new_id(16)
        self.parent_id = parent_id
        self.started = time.monotonic()
        self.steps: List[str] = []
        self.error: Optional[str] = None

    def step(self, message: str) -> None:
        self.steps.append(message)

    def fail(self, error) -> None:
        """Mark the span failed; error is an exception or a short reason."""
        if isinstance(error, BaseException):
            error = f"{type(error).__name__}: {error}"
        self.error = str(error)

    def child(self, name: str) -> "TraceSpan":
        return TraceSpan(name, trace_id=self.trace_id, parent_id=self.span_id)

    def headers(self) -> Dict[str, str]:
        return {TRACE_HEADER: self.trace_id, SPAN_HEADER: self.span_id}

    def finish(self) -> None:
        record = {
            "trace_id": self.trace_id,
            "span_id": self.span_id,
            "parent_id": self.parent_id,
            "name": self.name,
            "ms": round((time.monotonic() - self.started) * 1000, 2),
            "steps": self.steps,
            "error": self.error,
        }
        logger.info("TRACE: %s", json.dumps(record))

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_val is not None:
            self.fail(exc_val)
        self.finish()


def request_span(request: Request) -> Optional[TraceSpan]:
    """Span stored on the request by tracing_middleware, if any"""
    return getattr(request.state, "span", None)


async def tracing_middleware(request: Request, call_next):
    """Open one span per request, continuing the caller's trace id when given."""
    span = TraceSpan(
        f"{request.method} {request.url.path}",
        trace_id=request.headers.get(TRACE_HEADER),
        parent_id=request.headers.get(SPAN_HEADER),
    )
    with span:
        request.state.span = span
        request.state.trace_id = span.trace_id
        request.state.request_id = span.span_id

        response = await call_next(request)
        if response.status_code >= 400:
            span.fail(f"HTTP {response.status_code}")

        response.headers.update(span.headers())
        return response
