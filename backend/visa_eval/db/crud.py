"""
CRUD operations for evaluation persistence.

Provides:
- EvaluationRepository: stores merged submission + evaluation documents
  (implements the pipeline's EvaluationStore port)
- PartnerKeyRepository: issues and verifies partner API keys
"""

import json
import secrets
import string
import time
from typing import Any, Dict, List, Mapping, Optional

from .connection import DatabaseManager
from .schema import EvaluationRecord, PartnerKeyRecord, now_iso8601, today_utc

_ID_ALPHABET = string.ascii_lowercase + string.digits


def new_evaluation_id() -> str:
    """Generate an id of the form eval_<epoch ms>_<9 random chars>."""
    suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(9))
    return f"eval_{int(time.time() * 1000)}_{suffix}"


def new_api_key() -> str:
    """Generate an API key of the form vak_<64 hex chars>."""
    return f"vak_{secrets.token_hex(32)}"


def _score_of(data: Mapping[str, Any]) -> int:
    try:
        return max(0, min(100, int(data.get("score") or 0)))
    except (TypeError, ValueError):
        return 0


class EvaluationRepository:
    """
    Repository for evaluation records.

    Records are returned as plain dicts: the stored document with `id`,
    `createdAt` and (when assigned) `apiKey` merged in.
    """

    def __init__(self, db: DatabaseManager):
        """
        Initialize repository.

        Args:
            db: DatabaseManager instance
        """
        self.db = db

    @staticmethod
    def _row_to_dict(row) -> Dict[str, Any]:
        record = EvaluationRecord(
            id=row["id"],
            country=row["country"],
            visa_type=row["visa_type"],
            email=row["email"],
            score=row["score"],
            partner_id=row["partner_id"],
            api_key=row["api_key"],
            document=json.loads(row["document"]),
            created_at=row["created_at"],
        )
        data = dict(record.document)
        data["id"] = record.id
        data["createdAt"] = record.created_at
        if record.api_key:
            data["apiKey"] = record.api_key
        return data

    async def create(self, data: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Store a new evaluation.

        Args:
            data: Merged submission payload and evaluation result

        Returns:
            The stored record including its generated `id`
        """
        evaluation_id = new_evaluation_id()
        now = now_iso8601()
        document = {k: v for k, v in data.items() if k not in ("id", "apiKey")}

        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO evaluations (
                    id, country, visa_type, email, score,
                    partner_id, document, created_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    evaluation_id,
                    document.get("country"),
                    document.get("visaType"),
                    document.get("email"),
                    _score_of(document),
                    document.get("partnerId") or None,
                    json.dumps(document, ensure_ascii=False, default=str),
                    now,
                ),
            )

        record = dict(document)
        record["id"] = evaluation_id
        record["createdAt"] = now
        return record

    async def get(self, evaluation_id: str) -> Optional[Dict[str, Any]]:
        """Get an evaluation by id, or None."""
        async with self.db.transaction():
            row = await self.db.fetch_one(
                "SELECT * FROM evaluations WHERE id = ?", (evaluation_id,)
            )
        return self._row_to_dict(row) if row else None

    async def list(
        self,
        *,
        country: Optional[str] = None,
        min_score: Optional[int] = None,
        max_score: Optional[int] = None,
        partner_id: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """
        List evaluations, newest first.

        Args:
            country: Exact country match
            min_score: Inclusive lower score bound
            max_score: Inclusive upper score bound
            partner_id: Restrict to records of this partner plus records
                submitted without a partner

        Returns:
            List of evaluation dicts
        """
        clauses: List[str] = []
        params: List[Any] = []
        if partner_id is not None:
            clauses.append("(partner_id = ? OR partner_id IS NULL)")
            params.append(partner_id)
        if country:
            clauses.append("country = ?")
            params.append(country)
        if min_score is not None:
            clauses.append("score >= ?")
            params.append(int(min_score))
        if max_score is not None:
            clauses.append("score <= ?")
            params.append(int(max_score))

        sql = "SELECT * FROM evaluations"
        if clauses:
            sql += " WHERE " + " AND ".join(clauses)
        sql += " ORDER BY created_at DESC, id DESC"

        async with self.db.transaction():
            rows = await self.db.fetch_all(sql, tuple(params))
        return [self._row_to_dict(row) for row in rows]

    async def set_api_key(self, evaluation_id: str, api_key: str) -> bool:
        """Attach an access key to an evaluation. Returns False if missing."""
        async with self.db.transaction():
            cursor = await self.db.execute(
                "UPDATE evaluations SET api_key = ? WHERE id = ?",
                (api_key, evaluation_id),
            )
            updated = cursor.rowcount
            await cursor.close()
        return updated > 0

    async def get_by_api_key(self, api_key: str) -> Optional[Dict[str, Any]]:
        """Resolve an evaluation from its access key."""
        async with self.db.transaction():
            row = await self.db.fetch_one(
                "SELECT * FROM evaluations WHERE api_key = ?", (api_key,)
            )
        return self._row_to_dict(row) if row else None


class PartnerKeyRepository:
    """Repository for partner API keys and their daily request budget."""

    def __init__(self, db: DatabaseManager, default_rate_limit: int = 1000):
        self.db = db
        self.default_rate_limit = default_rate_limit

    @staticmethod
    def _row_to_record(row) -> PartnerKeyRecord:
        return PartnerKeyRecord(
            key=row["key"],
            partner_id=row["partner_id"],
            partner_name=row["partner_name"],
            rate_limit=row["rate_limit"],
            requests_used_today=row["requests_used_today"],
            usage_day=row["usage_day"],
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
        )

    async def create_key(
        self,
        partner_id: str,
        partner_name: str,
        rate_limit: Optional[int] = None,
    ) -> PartnerKeyRecord:
        """Issue a new key for a partner."""
        record = PartnerKeyRecord(
            key=new_api_key(),
            partner_id=partner_id,
            partner_name=partner_name,
            rate_limit=self.default_rate_limit if rate_limit is None else rate_limit,
            usage_day=today_utc(),
            created_at=now_iso8601(),
        )
        async with self.db.transaction():
            await self.db.execute(
                """
                INSERT INTO partner_keys (
                    key, partner_id, partner_name, rate_limit,
                    requests_used_today, usage_day, is_active, created_at
                ) VALUES (?, ?, ?, ?, 0, ?, 1, ?)
                """,
                (
                    record.key,
                    record.partner_id,
                    record.partner_name,
                    record.rate_limit,
                    record.usage_day,
                    record.created_at,
                ),
            )
        return record

    async def verify(self, key: str) -> Optional[PartnerKeyRecord]:
        """
        Check a key and count one request against its daily budget.

        Returns None for unknown, inactive or exhausted keys. The counter
        resets when the UTC day changes.
        """
        today = today_utc()
        async with self.db.transaction():
            row = await self.db.fetch_one(
                "SELECT * FROM partner_keys WHERE key = ?", (key,)
            )
            if not row:
                return None
            record = self._row_to_record(row)
            if not record.is_active:
                return None

            if record.usage_day != today:
                record.requests_used_today = 0
                record.usage_day = today
            if record.requests_used_today >= record.rate_limit:
                return None

            record.requests_used_today += 1
            await self.db.execute(
                """
                UPDATE partner_keys
                SET requests_used_today = ?, usage_day = ?
                WHERE key = ?
                """,
                (record.requests_used_today, record.usage_day, record.key),
            )
        return record

    async def deactivate(self, key: str) -> bool:
        async with self.db.transaction():
            cursor = await self.db.execute(
                "UPDATE partner_keys SET is_active = 0 WHERE key = ?", (key,)
            )
            updated = cursor.rowcount
            await cursor.close()
        return updated > 0
