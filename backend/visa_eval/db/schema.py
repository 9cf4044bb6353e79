"""
Database schema definitions for evaluation persistence.

Uses SQLite with:
- TEXT timestamps (ISO8601 format, UTC)
- The full evaluation stored as a JSON document, plus indexed columns
  for the fields partners filter on
- CHECK constraints for data integrity
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict


# ==================== Pydantic Models ====================

class EvaluationRecord(BaseModel):
    """Evaluation database row (document kept as decoded JSON)."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    country: Optional[str] = None
    visa_type: Optional[str] = None
    email: Optional[str] = None
    score: int = 0
    partner_id: Optional[str] = None
    api_key: Optional[str] = None
    document: Dict[str, Any]
    created_at: str  # ISO8601 timestamp


class PartnerKeyRecord(BaseModel):
    """Partner API key database row."""
    model_config = ConfigDict(from_attributes=True)

    key: str
    partner_id: str
    partner_name: str
    rate_limit: int = 1000
    requests_used_today: int = 0
    usage_day: str  # YYYY-MM-DD (UTC) the counter belongs to
    is_active: bool = True
    created_at: str  # ISO8601 timestamp


# ==================== SQL Schema ====================

SCHEMA_SQL = """
-- Enable foreign keys and optimize for web app workload
PRAGMA foreign_keys = ON;
PRAGMA journal_mode = WAL;
PRAGMA synchronous = NORMAL;
PRAGMA busy_timeout = 5000;

-- Evaluations: merged submission + evaluation result
CREATE TABLE IF NOT EXISTS evaluations (
    id TEXT PRIMARY KEY,
    country TEXT,
    visa_type TEXT,
    email TEXT,
    score INTEGER NOT NULL DEFAULT 0 CHECK (score BETWEEN 0 AND 100),
    partner_id TEXT,
    api_key TEXT UNIQUE,
    document TEXT NOT NULL,
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_evaluations_country_score
    ON evaluations(country, score);

CREATE INDEX IF NOT EXISTS idx_evaluations_partner_created_at
    ON evaluations(partner_id, created_at DESC);

-- Partner API keys with a per-day request budget
CREATE TABLE IF NOT EXISTS partner_keys (
    key TEXT PRIMARY KEY,
    partner_id TEXT NOT NULL,
    partner_name TEXT NOT NULL,
    rate_limit INTEGER NOT NULL DEFAULT 1000 CHECK (rate_limit >= 0),
    requests_used_today INTEGER NOT NULL DEFAULT 0,
    usage_day TEXT NOT NULL,
    is_active INTEGER NOT NULL DEFAULT 1 CHECK (is_active IN (0, 1)),
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_partner_keys_partner
    ON partner_keys(partner_id);
"""


# ==================== Helpers ====================

def now_iso8601() -> str:
    """Get current UTC timestamp in ISO8601 format."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


def today_utc() -> str:
    """Current UTC date, used as the partner key usage bucket."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def parse_iso8601(timestamp: str) -> datetime:
    """Parse ISO8601 timestamp string to datetime."""
    return datetime.strptime(timestamp, "%Y-%m-%dT%H:%M:%S.%fZ").replace(tzinfo=timezone.utc)
