"""
common module - shared constants and lookup tables

Provides the visa catalogue used by the validator and the scoring engine.

Usage:
    from backend.visa_eval.common import get_visa_config, required_documents
"""

from .visa_config import (
    TEST_COUNTRY,
    VISA_CONFIG,
    get_visa_config,
    is_test_country,
    optional_documents,
    required_documents,
)

__all__ = [
    "TEST_COUNTRY",
    "VISA_CONFIG",
    "get_visa_config",
    "is_test_country",
    "optional_documents",
    "required_documents",
]
