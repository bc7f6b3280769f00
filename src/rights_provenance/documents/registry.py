"""
Document Registry - the external collaborator behind chain of title entries

The chain of title only ever asks two questions of a registry: "is this
document valid?" and "what is its content hash?". Document authoring and
approval workflows live elsewhere; the adapters here are the thinnest
possible backing for those two questions.
"""

import sqlite3
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Protocol

from pydantic import BaseModel

from rights_provenance.kernel.digest import sha256_hex
from rights_provenance.kernel.logging import get_logger

logger = get_logger(__name__)


class DocumentRegistry(Protocol):
    """Narrow interface the chain of title depends on"""

    def verify_document(self, document_id: str) -> bool:
        ...

    def get_document_hash(self, document_id: str) -> str:
        ...


class DocumentRecord(BaseModel):
    document_id: str
    content_hash: str
    is_valid: bool = True
    registered_at: datetime


class InMemoryDocumentRegistry:
    """Dictionary-backed registry for tests and embedded use"""

    def __init__(self) -> None:
        self.documents: dict[str, DocumentRecord] = {}

    def register(self, document_id: str, content: bytes = b"", content_hash: str | None = None) -> DocumentRecord:
        record = DocumentRecord(
            document_id=document_id,
            content_hash=content_hash or sha256_hex(content),
            registered_at=datetime.now(timezone.utc),
        )
        self.documents[document_id] = record
        return record

    def revoke(self, document_id: str) -> None:
        record = self.documents.get(document_id)
        if record is not None:
            self.documents[document_id] = record.model_copy(update={"is_valid": False})

    def verify_document(self, document_id: str) -> bool:
        record = self.documents.get(document_id)
        return record is not None and record.is_valid

    def get_document_hash(self, document_id: str) -> str:
        """Content hash, or an empty string for unknown documents"""
        record = self.documents.get(document_id)
        return record.content_hash if record else ""


class SQLiteDocumentRegistry:
    """
    SQLite-backed registry sharing the ledger database file

    Schema:
    - documents table: document_id, content_hash, is_valid, registered_at
    """

    def __init__(self, db_path: str | Path) -> None:
        self.db_path = Path(db_path)
        self._initialize_schema()

    def _initialize_schema(self) -> None:
        with self._connect() as conn:
            conn.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    document_id TEXT PRIMARY KEY,
                    content_hash TEXT NOT NULL,
                    is_valid INTEGER NOT NULL DEFAULT 1,
                    registered_at TEXT NOT NULL
                )
            """)
            conn.commit()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self.db_path), timeout=5.0)
        conn.row_factory = sqlite3.Row
        try:
            yield conn
        finally:
            conn.close()

    def register(self, document_id: str, content: bytes = b"", content_hash: str | None = None) -> DocumentRecord:
        """
        Register (or re-register) a document

        Args:
            document_id: Registry key cited by title entries
            content: Raw document bytes, hashed if content_hash is not given
            content_hash: Precomputed content hash
        """
        record = DocumentRecord(
            document_id=document_id,
            content_hash=content_hash or sha256_hex(content),
            registered_at=datetime.now(timezone.utc),
        )
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO documents (document_id, content_hash, is_valid, registered_at)
                VALUES (?, ?, 1, ?)
                ON CONFLICT(document_id) DO UPDATE SET
                    content_hash = excluded.content_hash,
                    is_valid = 1,
                    registered_at = excluded.registered_at
            """,
                (record.document_id, record.content_hash, record.registered_at.isoformat()),
            )
            conn.commit()
        logger.info("Document registered", document_id=document_id)
        return record

    def revoke(self, document_id: str) -> bool:
        """Mark a document invalid; returns False if it was never registered"""
        with self._connect() as conn:
            cursor = conn.execute(
                "UPDATE documents SET is_valid = 0 WHERE document_id = ?", (document_id,)
            )
            conn.commit()
            revoked = cursor.rowcount > 0
        if revoked:
            logger.info("Document revoked", document_id=document_id)
        return revoked

    def get(self, document_id: str) -> DocumentRecord | None:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT document_id, content_hash, is_valid, registered_at "
                "FROM documents WHERE document_id = ?",
                (document_id,),
            ).fetchone()
        if not row:
            return None
        return DocumentRecord(
            document_id=row["document_id"],
            content_hash=row["content_hash"],
            is_valid=bool(row["is_valid"]),
            registered_at=datetime.fromisoformat(row["registered_at"]),
        )

    def verify_document(self, document_id: str) -> bool:
        record = self.get(document_id)
        return record is not None and record.is_valid

    def get_document_hash(self, document_id: str) -> str:
        record = self.get(document_id)
        return record.content_hash if record else ""
