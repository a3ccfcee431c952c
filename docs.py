# Orange Tools document list
# A JSON file of titles and links that support staff paste into the chat.
# Seeded on first use, merged by slug, sorted by title. Read-only in production.

import base64
import fcntl
import json
import logging
import os
import re
import threading
from typing import Optional

from pydantic import BaseModel, Field

log = logging.getLogger("orange_tools.docs")


class DocEntry(BaseModel):
    id: str
    title: str
    url: str = ""
    tags: list[str] = Field(default_factory=list)


DOCS_SEED_TITLES = [
    "عروض حماية الوطن",
    "نت وين مكان عروض 4",
    "Max It",
    "خطوط انترنت",
    "حماة الوطن مدفوع ماكس",
    "خطوط الزوار",
    "الانترنت الامن",
    "تواصل",
    "عروض معاك",
    "امل اورنج",
    "طرق الشحن !",
    "رموز اورنج",
    "E-shop",
    "tod + OSN",
    "تقسيط",
    "اكاديمية اورنج + وظيفه",
    "zte 6600",
    "KARTI",
]


# ── Slugs ─────────────────────────────────────────────────────────────

ARABIC_CHAR_RE = re.compile(r"[\u0600-\u06FF\u0750-\u077F\u08A0-\u08FF\uFB50-\uFDFF\uFE70-\uFEFF]")
_DIACRITICS_RE = re.compile(r"[\u064B-\u065F]")
_SPACE_RE = re.compile(r"[\s\u200f\u200e]+")
_PUNCT_RE = re.compile(r"[_~`^،؟!?,.;:\-]+")

ARABIC_TO_ASCII = {
    "أ": "a", "إ": "i", "آ": "a", "ا": "a", "ب": "b", "ت": "t", "ث": "th",
    "ج": "j", "ح": "h", "خ": "kh", "د": "d", "ذ": "dh", "ر": "r", "ز": "z",
    "س": "s", "ش": "sh", "ص": "s", "ض": "d", "ط": "t", "ظ": "z", "ع": "a",
    "غ": "gh", "ف": "f", "ق": "q", "ك": "k", "ل": "l", "م": "m", "ن": "n",
    "ه": "h", "و": "w", "ي": "y", "ء": "a", "ئ": "y", "ؤ": "w", "ة": "h",
    "ى": "a", "لا": "la", "ﻻ": "la",
    "٠": "0", "١": "1", "٢": "2", "٣": "3", "٤": "4",
    "٥": "5", "٦": "6", "٧": "7", "٨": "8", "٩": "9",
}


def normalize_whitespace(text: str) -> str:
    return _SPACE_RE.sub(" ", _DIACRITICS_RE.sub("", text)).strip()


def _slug_fallback(title: str) -> str:
    encoded = base64.urlsafe_b64encode(title.encode("utf-8")).decode("ascii").rstrip("=")
    return f"doc-{encoded[:8]}"


def slugify_title(raw_title: str) -> str:
    """ASCII slug for a title in either language (``خطوط الزوار`` -> ``khtwt-alzwar``)."""
    title = _PUNCT_RE.sub(" ", normalize_whitespace(raw_title)).lower()
    if not title.strip():
        return _slug_fallback(raw_title)

    parts = []
    i = 0
    while i < len(title):
        pair = title[i:i + 2]
        ch = title[i]
        if len(pair) == 2 and pair in ARABIC_TO_ASCII:
            parts.append(ARABIC_TO_ASCII[pair])
            i += 2
            continue
        if ch in ARABIC_TO_ASCII:
            parts.append(ARABIC_TO_ASCII[ch])
        elif ch.isascii() and ch.isalnum():
            parts.append(ch)
        elif ch.isspace():
            parts.append("-")
        i += 1

    slug = re.sub(r"-+", "-", "".join(parts)).strip("-")
    return slug or _slug_fallback(raw_title)


def language_tag(title: str) -> str:
    return "ar" if ARABIC_CHAR_RE.match(title.strip()) else "en"


def make_entry(title: str, url: str = "") -> DocEntry:
    return DocEntry(
        id=slugify_title(title),
        title=normalize_whitespace(title),
        url=url,
        tags=[language_tag(title)],
    )


# ── Merge ─────────────────────────────────────────────────────────────


def merge_docs(existing: list[DocEntry], incoming: list[DocEntry]):
    """Merge by id. Returns ``(merged_list, added, updated)``.

    Unchanged entries are neither added nor updated. An incoming entry with
    no tags keeps the tags already stored.
    """
    by_id = {d.id: d for d in existing}
    added, updated = [], []

    for doc in incoming:
        prev = by_id.get(doc.id)
        if prev is None:
            by_id[doc.id] = doc
            added.append(doc)
            continue
        if prev.title == doc.title and prev.url == doc.url and prev.tags == doc.tags:
            continue
        merged = prev.model_copy(update={
            "title": doc.title,
            "url": doc.url,
            "tags": doc.tags or prev.tags,
        })
        by_id[doc.id] = merged
        updated.append(merged)

    return list(by_id.values()), added, updated


def extract_line_candidates(message: str) -> list[str]:
    """Lines (or bullet items) of a pasted list that look like titles."""
    candidates = []
    for raw in re.split(r"\n+|•+", message or ""):
        line = normalize_whitespace(raw)
        if len(line) >= 2 and any(ch.isalnum() for ch in line):
            candidates.append(line)
    return candidates


# ── Store ─────────────────────────────────────────────────────────────


class DocStore:
    """JSON-file document list.

    Writable stores create and seed the file on first read. Read-only stores
    (production) only read and report no changes on upsert.
    """

    MIN_LINES_FOR_UPDATE = 3

    def __init__(self, path: str, writable: bool = True, seed_titles: Optional[list[str]] = None):
        self.path = path
        self.writable = writable
        self.seed_titles = DOCS_SEED_TITLES if seed_titles is None else seed_titles
        self._lock = threading.Lock()

    def _ensure_file(self):
        if os.path.exists(self.path):
            return
        dirpath = os.path.dirname(self.path)
        if dirpath:
            os.makedirs(dirpath, exist_ok=True)
        seed = [make_entry(t) for t in self.seed_titles]
        self._write(seed)
        log.info("Seeded docs file %s with %d titles", self.path, len(seed))

    def _read_unlocked(self) -> list[DocEntry]:
        if self.writable:
            self._ensure_file()
        elif not os.path.exists(self.path):
            return []
        with open(self.path, "r", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_SH)
            try:
                data = json.load(f)
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)
        if not isinstance(data, list):
            raise ValueError(f"{self.path} must hold a JSON list")
        return [DocEntry.model_validate(item) for item in data]

    def _write(self, entries: list[DocEntry]):
        ordered = sorted(entries, key=lambda d: d.title)
        with open(self.path, "a+", encoding="utf-8") as f:
            fcntl.flock(f, fcntl.LOCK_EX)
            try:
                f.seek(0)
                f.truncate()
                json.dump([d.model_dump() for d in ordered], f, ensure_ascii=False, indent=2)
            finally:
                fcntl.flock(f, fcntl.LOCK_UN)

    def read(self) -> list[DocEntry]:
        with self._lock:
            return self._read_unlocked()

    def upsert_titles(self, titles: list[str]):
        """Add or refresh titles; existing URLs survive. Returns ``(added, updated)``."""
        if not self.writable or not titles:
            return [], []
        with self._lock:
            docs = self._read_unlocked()
            urls = {d.id: d.url for d in docs}
            incoming = []
            for title in titles:
                entry = make_entry(title)
                incoming.append(entry.model_copy(update={"url": urls.get(entry.id, "")}))
            merged, added, updated = merge_docs(docs, incoming)
            if added or updated:
                self._write(merged)
                log.info("Docs list updated: %d added, %d updated", len(added), len(updated))
        return added, updated

    def extract_and_store(self, message: str):
        """Treat a pasted list of 3+ lines as titles to upsert."""
        if not self.writable:
            return [], []
        candidates = extract_line_candidates(message)
        if len(candidates) < self.MIN_LINES_FOR_UPDATE:
            return [], []
        return self.upsert_titles(candidates)
