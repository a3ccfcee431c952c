# Orange Tools chat assistant
# Deterministic answers first (pro-rata, VAT, doc navigation, docs-list updates).
# Everything else goes to the language model and streams back as SSE.

import json
import logging
import time
from typing import AsyncIterator, Literal, Optional

import anthropic
from pydantic import BaseModel, Field

import config
from billing import format_jd, format_rate_pct, vat_quote
from docs import DocEntry, DocStore
from intents import (
    ProrataIntent,
    detect_doc_navigation,
    detect_locale,
    parse_prorata_intent,
    parse_vat_intent,
)
from prorata import next_anchor_after, prorate_activation, prorate_from_gross
from render import bilingual, format_result, pct
from validation import ValidationError

log = logging.getLogger("orange_tools.chat")

SYSTEM_PROMPT = """You are the Orange Tools Assistant, a helpful AI that explains and assists with:

1. **Orange Price Calculator** - Calculates pricing variants for Orange telecom services:
   - Base: The input price (A)
   - Nos_b_Nos: A + (A/2 × 0.4616) + (A/2 × 0.16)
   - Voice Calls Only: A × 1.4616
   - Data Only: A × 1.16

2. **Pro-Rata Calculator** - Calculates prorated billing on a monthly cycle anchored on the {anchor_day}th:
   - Takes an activation date and either the monthly subscription (net) or the full invoice (gross, incl. {vat_pct} VAT)
   - Counts the days from activation to the next anchor date, out of the days in that cycle
   - Outputs the prorated amount in Jordanian Dinar with 3 decimals
   - Formula: Monthly Net × Days Used / Days In Cycle

You can help users:
- Understand the calculator formulas
- Enter data correctly
- Interpret results
- Switch between Arabic and English
- Navigate the interface and the documents list

Be concise, friendly, and professional. Provide clear explanations with examples when helpful. Support both English and Arabic seamlessly."""


# ── Request / reply models ────────────────────────────────────────────


class ChatMessage(BaseModel):
    id: str
    role: Literal["user", "assistant", "system"]
    content: str
    timestamp: float
    payload: Optional[dict] = None


class ChatRequest(BaseModel):
    messages: list[ChatMessage] = Field(min_length=1)
    locale: Optional[Literal["ar", "en"]] = None


def build_assistant_message(content: str, payload: Optional[dict] = None) -> dict:
    now_ms = int(time.time() * 1000)
    message = {"id": str(now_ms), "role": "assistant", "content": content, "timestamp": now_ms}
    if payload is not None:
        message["payload"] = payload
    return message


def build_docs_update_note(added: list, updated: list, locale: str) -> str:
    if not added and not updated:
        return ""
    ar, en = [], []
    if added:
        ar.append(f"إضافة {len(added)} عنصر جديد")
        en.append(f"added {len(added)} new title{'s' if len(added) > 1 else ''}")
    if updated:
        ar.append(f"تحديث {len(updated)} عنصر")
        en.append(f"updated {len(updated)} title{'s' if len(updated) > 1 else ''}")
    return bilingual(
        locale,
        f"تم تحديث قائمة المستندات ({' و '.join(ar)}).",
        f"Docs list refreshed ({' & '.join(en)}).",
    )


def _combine(locale: str, note: str, ar: str, en: str) -> str:
    primary = bilingual(locale, ar, en)
    return f"{note}\n{primary}" if note else primary


def latest_user_message(messages: list[ChatMessage]) -> Optional[ChatMessage]:
    for m in reversed(messages):
        if m.role == "user" and m.content.strip():
            return m
    return None


# ── Deterministic replies ─────────────────────────────────────────────


def prorata_reply(intent: ProrataIntent, locale: str, note: str) -> dict:
    anchor_day = config.DEFAULT_ANCHOR_DAY
    vat_rate = config.DEFAULT_VAT_RATE
    if intent.mode == "gross":
        result = prorate_from_gross(intent.amount, intent.activation_date, anchor_day, vat_rate)
        monthly = result.monthly_net
    else:
        result = prorate_activation(intent.amount, intent.activation_date, anchor_day)
        monthly = intent.amount

    data = {
        "period": f"{result.start.isoformat()} → {result.end.isoformat()}",
        "proDays": f"{result.used_days} / {result.total_days}",
        "percent": pct(result.ratio),
        "monthlyNet": f"JD {format_jd(monthly)}",
        "prorataNet": f"JD {format_jd(result.value)}",
        "invoiceDate": result.end.isoformat(),
        "coverageUntil": next_anchor_after(result.end, anchor_day).isoformat(),
        "script": format_result(result, monthly, locale, "script"),
    }
    if result.gross_echo is not None:
        data["fullInvoiceGross"] = result.gross_echo

    return build_assistant_message(
        _combine(locale, note, "تم حساب البروراتا.", "Pro-rata calculation ready."),
        payload={"kind": "prorata", "locale": locale, "data": data},
    )


def vat_reply(amount: float, quantity: float, locale: str, note: str) -> dict:
    q = vat_quote(amount, quantity, config.DEFAULT_VAT_RATE)
    rate = format_rate_pct(q.rate)
    qty = f"{q.quantity:g}"
    ar = (
        f"القيمة مع ضريبة {rate} هي JD {format_jd(q.unit_gross)} لكل وحدة (الضريبة: JD {format_jd(q.unit_vat)}).\n"
        f"الإجمالي لعدد {qty}: صافي JD {format_jd(q.subtotal)} + ضريبة JD {format_jd(q.total_vat)}"
        f" = JD {format_jd(q.total_due)}."
    )
    en = (
        f"With {rate} VAT, each unit is JD {format_jd(q.unit_gross)} (VAT: JD {format_jd(q.unit_vat)}).\n"
        f"Total for {qty}: net JD {format_jd(q.subtotal)} + VAT JD {format_jd(q.total_vat)}"
        f" = JD {format_jd(q.total_due)}."
    )
    return build_assistant_message(_combine(locale, note, ar, en))


def navigation_reply(doc: DocEntry, locale: str, note: str) -> dict:
    if doc.url:
        ar, en = f'تم فتح "{doc.title}".', f'Opening "{doc.title}".'
    else:
        ar, en = f'أضف رابطًا لـ "{doc.title}" ثم أعد المحاولة.', f'Add a link for "{doc.title}" and try again.'
    payload = {"kind": "navigate-doc", "locale": locale, "doc": doc.model_dump()}
    if note:
        payload["note"] = note
    return build_assistant_message(_combine(locale, note, ar, en), payload=payload)


def _looks_like_pasted_list(text: str) -> bool:
    lines = [line for line in text.splitlines() if line.strip()]
    return len(lines) >= 3 and "?" not in text and "؟" not in text


class ChatOutcome:
    """What the chat endpoint should send: a JSON message or an LLM stream."""

    def __init__(self, locale: str, message: Optional[dict] = None, docs_note: str = "",
                 docs: Optional[list[DocEntry]] = None):
        self.locale = locale
        self.message = message
        self.docs_note = docs_note
        self.docs = docs or []

    @property
    def needs_model(self) -> bool:
        return self.message is None


def handle_chat(request: ChatRequest, store: DocStore) -> ChatOutcome:
    """Decide the reply for ``request`` without calling the language model."""
    latest = latest_user_message(request.messages)
    locale = request.locale or detect_locale(latest.content if latest else None)

    if latest is None:
        return ChatOutcome(locale, docs=store.read())

    added, updated = store.extract_and_store(latest.content)
    docs = store.read()
    note = build_docs_update_note(added, updated, locale)
    text = latest.content

    intent = parse_prorata_intent(text)
    if intent is not None:
        try:
            return ChatOutcome(locale, prorata_reply(intent, locale, note), note, docs)
        except ValidationError as e:
            log.info("Pro-rata intent rejected: %s", e)
            msg = _combine(locale, note, f"تعذر حساب البروراتا: {e}", f"Could not calculate pro-rata: {e}")
            return ChatOutcome(locale, build_assistant_message(msg), note, docs)

    vat = parse_vat_intent(text)
    if vat is not None:
        return ChatOutcome(locale, vat_reply(vat.amount, vat.quantity, locale, note), note, docs)

    doc = detect_doc_navigation(text, docs)
    if doc is not None:
        return ChatOutcome(locale, navigation_reply(doc, locale, note), note, docs)

    if note and _looks_like_pasted_list(text):
        payload = {
            "kind": "docs-update",
            "locale": locale,
            "added": [d.model_dump() for d in added],
            "updated": [d.model_dump() for d in updated],
        }
        return ChatOutcome(locale, build_assistant_message(note, payload), note, docs)

    return ChatOutcome(locale, docs_note=note, docs=docs)


# ── Language model streaming ──────────────────────────────────────────


def build_system_prompt(docs: list[DocEntry]) -> str:
    prompt = SYSTEM_PROMPT.format(
        anchor_day=config.DEFAULT_ANCHOR_DAY,
        vat_pct=format_rate_pct(config.DEFAULT_VAT_RATE),
    )
    if docs:
        listing = " | ".join(f"{d.title} ({d.url or 'pending'})" for d in docs)
        prompt += f"\n\nDocs available: {listing}"
    return prompt


def compose_model_messages(messages: list[ChatMessage]) -> list[dict]:
    """User/assistant turns only, in order, starting with a user turn."""
    turns = [
        {"role": m.role, "content": m.content}
        for m in messages
        if m.role in ("user", "assistant") and m.content.strip()
    ]
    while turns and turns[0]["role"] != "user":
        turns.pop(0)
    return turns


class AnthropicStreamer:
    """Streams text deltas from the Anthropic Messages API."""

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None,
                 max_tokens: Optional[int] = None):
        self.api_key = api_key if api_key is not None else config.ANTHROPIC_API_KEY
        self.model = model or config.CHAT_MODEL
        self.max_tokens = max_tokens or config.CHAT_MAX_TOKENS
        self._client = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def stream(self, system: str, messages: list[dict]) -> AsyncIterator[str]:
        client = self._get_client()
        async with client.messages.stream(
            model=self.model,
            max_tokens=self.max_tokens,
            system=system,
            messages=messages,
        ) as stream:
            async for text in stream.text_stream:
                if text:
                    yield text


def sse_data(obj) -> str:
    return f"data: {json.dumps(obj, ensure_ascii=False)}\n\n"


SSE_DONE = "data: [DONE]\n\n"


async def sse_events(streamer, system: str, messages: list[dict], prelude: str = "") -> AsyncIterator[str]:
    """Frame a model stream as SSE: optional prelude, content deltas, ``[DONE]``.

    A failure mid-stream is logged and sent as an ``error`` event; headers are
    already out by then so no status code can change.
    """
    if prelude:
        yield sse_data({"content": f"{prelude}\n"})
    try:
        async for delta in streamer.stream(system, messages):
            yield sse_data({"content": delta})
    except Exception as e:
        log.exception("Chat stream failed")
        yield sse_data({"error": str(e) or "chat error"})
        return
    yield SSE_DONE
