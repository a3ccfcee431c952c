"""Shared pytest configuration for the Orange Tools test suite.

Ensures the project root is on sys.path so test files can import
source modules (api, prorata, billing, etc.) directly, and points the
docs file at a temp directory before anything imports ``config``.
"""

import os
import sys
import tempfile
from pathlib import Path

# Add project root to sys.path so `import prorata`, `from api import app`, etc. work
PROJECT_ROOT = str(Path(__file__).resolve().parent.parent)
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

_tmp_ctx = tempfile.TemporaryDirectory(prefix="orange_tools_test_")
os.environ["ORANGE_ENV"] = "test"
os.environ["ORANGE_DOCS_FILE"] = os.path.join(_tmp_ctx.name, "docs.json")
os.environ["ORANGE_ANCHOR_DAY"] = "15"
os.environ["ORANGE_VAT_RATE"] = "0.16"
os.environ["ORANGE_CHAT_RATE_LIMIT"] = "5000"  # Prevent 429s in tests
os.environ["ORANGE_LOG_FILE"] = ""
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
