# Orange Tools API v1.0.0
# FastAPI. Two calculators, VAT, the docs list, and a streaming chat assistant.

import json
import time
from typing import Literal, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

import config
from assistant import (
    AnthropicStreamer,
    ChatRequest,
    build_system_prompt,
    compose_model_messages,
    handle_chat,
    sse_events,
)
from billing import vat_breakdown, vat_breakdown_from_gross
from docs import DocStore
from pricing import FORMULAS, calculate_pricing
from prorata import prorate, prorate_activation, prorate_from_gross, resolve_cycle
from ratelimit import RateLimiter
from render import format_result
from validation import ValidationError

log = config.setup_logging()

app = FastAPI(title="Orange Tools", version="1.0.0")

# Swappable collaborators; tests replace these with temp files and fakes.
app.state.doc_store = DocStore(config.DOCS_FILE, writable=config.DOCS_WRITABLE)
app.state.chat_limiter = RateLimiter(config.CHAT_RATE_LIMIT, config.CHAT_RATE_WINDOW_SEC)
app.state.chat_streamer = AnthropicStreamer()

RATE_LIMITED_PATHS = {"/api/chat"}


def client_ip(request: Request) -> str:
    # Peer address only. Behind a trusted proxy, run uvicorn with
    # --proxy-headers / --forwarded-allow-ips so it rewrites request.client.
    return request.client.host if request.client else "unknown"


def _error(status_code: int, code: str, message: str, **extra) -> JSONResponse:
    error = {"code": code, "message": message}
    error.update(extra)
    return JSONResponse(status_code=status_code, content={"ok": False, "error": error})


class RequestLogMiddleware(BaseHTTPMiddleware):
    """Emit structured access logs for observability."""

    async def dispatch(self, request: Request, call_next):
        started = time.time()
        response = await call_next(request)
        duration_ms = round((time.time() - started) * 1000, 2)
        entry = {
            "event": "api_request",
            "path": request.url.path,
            "method": request.method,
            "status": response.status_code,
            "duration_ms": duration_ms,
            "client_ip": client_ip(request),
        }
        log.info(json.dumps(entry, sort_keys=True))
        return response


app.add_middleware(RequestLogMiddleware)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-IP sliding window on the paths that cost money."""

    async def dispatch(self, request: Request, call_next):
        if request.url.path not in RATE_LIMITED_PATHS:
            return await call_next(request)

        limiter: RateLimiter = request.app.state.chat_limiter
        ip = client_ip(request)
        if not limiter.allow(ip):
            retry = limiter.retry_after(ip)
            response = _error(429, "rate_limited", "Too many requests. Please try again later.")
            response.headers["Retry-After"] = str(max(1, int(retry + 0.999)))
            return response
        return await call_next(request)


app.add_middleware(RateLimitMiddleware)


@app.exception_handler(HTTPException)
async def http_exception_handler(_: Request, exc: HTTPException):
    return _error(exc.status_code, "http_error", str(exc.detail))


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(_: Request, exc: RequestValidationError):
    return _error(422, "validation_error", "Request validation failed", details=exc.errors())


@app.exception_handler(ValidationError)
async def calculation_validation_handler(_: Request, exc: ValidationError):
    return _error(400, "validation_error", str(exc))


# ── Request models ────────────────────────────────────────────────────


class PricingIn(BaseModel):
    base_price: float


class ProrataIn(BaseModel):
    monthly: float
    pivot: str
    anchor_day: int = Field(default=config.DEFAULT_ANCHOR_DAY)
    mode: Literal["remaining", "elapsed"] = "remaining"
    view: Optional[Literal["script", "totals", "vat", "narrative"]] = None
    lang: Literal["ar", "en"] = "ar"


class ActivationIn(BaseModel):
    activation: str
    monthly: Optional[float] = None
    gross: Optional[float] = None
    anchor_day: int = Field(default=config.DEFAULT_ANCHOR_DAY)
    vat_rate: float = Field(default=config.DEFAULT_VAT_RATE)
    view: Optional[Literal["script", "totals", "vat", "narrative"]] = None
    lang: Literal["ar", "en"] = "ar"


class VatIn(BaseModel):
    net: Optional[float] = None
    gross: Optional[float] = None
    vat_rate: float = Field(default=config.DEFAULT_VAT_RATE)


# ── Health ────────────────────────────────────────────────────────────


@app.get("/healthz")
def healthz():
    return {"ok": True, "status": "healthy", "env": config.ORANGE_ENV}


# ── Calculators ───────────────────────────────────────────────────────


@app.post("/api/pricing")
def api_pricing(p: PricingIn):
    """Orange price variants for base price A."""
    result = calculate_pricing(p.base_price)
    return {"ok": True, "result": result.to_dict(), "formulas": FORMULAS}


@app.get("/api/cycle")
def api_cycle(pivot: str, anchor_day: int = config.DEFAULT_ANCHOR_DAY):
    """Billing cycle containing ``pivot``."""
    return {"ok": True, "cycle": resolve_cycle(pivot, anchor_day)}


@app.post("/api/prorata")
def api_prorata(p: ProrataIn):
    """Prorate a monthly amount over the cycle containing ``pivot``."""
    result = prorate(p.monthly, p.pivot, p.anchor_day, p.mode)
    body = {"ok": True, "result": result.to_dict()}
    if p.view:
        body["formatted"] = format_result(result, p.monthly, p.lang, p.view)
    return body


@app.post("/api/prorata/activation")
def api_prorata_activation(p: ActivationIn):
    """Single first invoice for a new subscription, from net monthly or gross invoice."""
    if (p.monthly is None) == (p.gross is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of monthly or gross")
    if p.gross is not None:
        result = prorate_from_gross(p.gross, p.activation, p.anchor_day, p.vat_rate)
        monthly = result.monthly_net
    else:
        result = prorate_activation(p.monthly, p.activation, p.anchor_day)
        monthly = p.monthly
    body = {"ok": True, "result": result.to_dict()}
    if p.view:
        body["formatted"] = format_result(result, monthly, p.lang, p.view, vat_rate=p.vat_rate)
    return body


@app.post("/api/vat")
def api_vat(v: VatIn):
    """Net/VAT/gross from either side."""
    if (v.net is None) == (v.gross is None):
        raise HTTPException(status_code=400, detail="Provide exactly one of net or gross")
    if v.net is not None:
        breakdown = vat_breakdown(v.net, v.vat_rate)
    else:
        breakdown = vat_breakdown_from_gross(v.gross, v.vat_rate)
    return {"ok": True, "vat": breakdown.to_dict()}


# ── Docs ──────────────────────────────────────────────────────────────


@app.get("/api/docs")
def api_docs(request: Request):
    store: DocStore = request.app.state.doc_store
    return {"ok": True, "docs": [d.model_dump() for d in store.read()]}


# ── Chat ──────────────────────────────────────────────────────────────


@app.post("/api/chat")
async def api_chat(chat: ChatRequest, request: Request):
    """Deterministic JSON reply when an intent matches; otherwise an SSE model stream."""
    outcome = await run_in_threadpool(handle_chat, chat, request.app.state.doc_store)
    if not outcome.needs_model:
        return {"ok": True, "message": outcome.message}

    turns = compose_model_messages(chat.messages)
    if not turns:
        raise HTTPException(status_code=400, detail="No user message to answer")

    return StreamingResponse(
        sse_events(
            request.app.state.chat_streamer,
            build_system_prompt(outcome.docs),
            turns,
            prelude=outcome.docs_note,
        ),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no",
        },
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
