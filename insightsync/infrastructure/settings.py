"""
Application-wide settings and environment configuration
"""

from __future__ import annotations

import os
from pathlib import Path

INSIGHTSYNC_ROOT = Path(__file__).parent.parent

# Local insight store
DB_PATH = Path(os.getenv("INSIGHTSYNC_DB_PATH", str(INSIGHTSYNC_ROOT / "data" / "insights.db")))

# Gemini
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")
GEMINI_MAX_TOKENS = int(os.getenv("GEMINI_MAX_TOKENS", "1024"))
GEMINI_TEMPERATURE = float(os.getenv("GEMINI_TEMPERATURE", "1.0"))
