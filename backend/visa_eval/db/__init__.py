"""
Database module for evaluation persistence.

Provides SQLite-based storage for:
- Evaluation records (submission + scored result)
- Partner API keys and their daily request budget

Usage:
    from backend.visa_eval.db import DatabaseManager, EvaluationRepository

    db = DatabaseManager(db_path)
    await db.init()

    store = EvaluationRepository(db)
    record = await store.create({"country": "Canada", "score": 70})
"""

from .connection import DatabaseManager
from .crud import (
    EvaluationRepository,
    PartnerKeyRepository,
    new_api_key,
    new_evaluation_id,
)
from .schema import EvaluationRecord, PartnerKeyRecord

__all__ = [
    # Connection
    "DatabaseManager",
    # Repositories
    "EvaluationRepository",
    "PartnerKeyRepository",
    "new_api_key",
    "new_evaluation_id",
    # Models
    "EvaluationRecord",
    "PartnerKeyRecord",
]
