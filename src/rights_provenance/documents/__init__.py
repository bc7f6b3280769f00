"""
Documents - adapters for the external document registry
"""

from rights_provenance.documents.registry import (
    DocumentRecord,
    DocumentRegistry,
    InMemoryDocumentRegistry,
    SQLiteDocumentRegistry,
)

__all__ = [
    "DocumentRegistry",
    "DocumentRecord",
    "InMemoryDocumentRegistry",
    "SQLiteDocumentRegistry",
]
