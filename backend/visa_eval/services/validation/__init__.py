"""
Document validation for uploaded visa documents.
"""

from .validator import DefaultDocumentValidator, resolve_required_docs

__all__ = ["DefaultDocumentValidator", "resolve_required_docs"]
