# Orange Tools configuration
# Environment first, .env second, defaults last. One logger tree for everything.

import logging
import os

from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

ORANGE_ENV = os.environ.get("ORANGE_ENV", "dev").lower()
IS_PRODUCTION = ORANGE_ENV in {"prod", "production"}


def _env_bool(name, default):
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# ── Billing defaults ─────────────────────────────────────────────────

DEFAULT_ANCHOR_DAY = int(os.environ.get("ORANGE_ANCHOR_DAY", "15"))
DEFAULT_VAT_RATE = float(os.environ.get("ORANGE_VAT_RATE", "0.16"))


# ── Document store ───────────────────────────────────────────────────

DOCS_FILE = os.environ.get("ORANGE_DOCS_FILE", os.path.join(BASE_DIR, "shared", "docs.json"))
DOCS_WRITABLE = _env_bool("ORANGE_DOCS_WRITABLE", not IS_PRODUCTION)


# ── Chat assistant ───────────────────────────────────────────────────

ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
CHAT_MODEL = os.environ.get("ORANGE_CHAT_MODEL", "claude-3-5-haiku-latest")
CHAT_MAX_TOKENS = int(os.environ.get("ORANGE_CHAT_MAX_TOKENS", "1024"))
CHAT_RATE_LIMIT = int(os.environ.get("ORANGE_CHAT_RATE_LIMIT", "10"))
CHAT_RATE_WINDOW_SEC = float(os.environ.get("ORANGE_CHAT_RATE_WINDOW_SEC", "60"))


# ── Logging ──────────────────────────────────────────────────────────

LOG_FILE = os.environ.get("ORANGE_LOG_FILE", "")
LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(log_file=None, level=logging.INFO):
    """Configure the ``orange_tools`` logger once.

    Console always; a file handler only when ``ORANGE_LOG_FILE`` (or
    ``log_file``) is set. Calling it again is a no-op.
    """
    log_file = log_file or LOG_FILE
    logger = logging.getLogger("orange_tools")

    if logger.handlers:
        return logger

    logger.setLevel(level)
    fmt = logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT)

    ch = logging.StreamHandler()
    ch.setLevel(level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    if log_file:
        fh = logging.FileHandler(log_file)
        fh.setLevel(level)
        fh.setFormatter(fmt)
        logger.addHandler(fh)

    return logger
