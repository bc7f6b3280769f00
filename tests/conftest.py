"""
Pytest configuration and shared fixtures

Fun fact: The name "conftest" comes from pytest's configuration testing
framework. Files named conftest.py are automatically discovered and their
fixtures are available to all tests in the same directory and subdirectories!
"""

import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator

import pytest
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from rights_provenance.documents.registry import InMemoryDocumentRegistry
from rights_provenance.kernel.event_store import SQLiteEventStore
from rights_provenance.kernel.policy import LedgerPolicy
from rights_provenance.kernel.signatures import generate_signing_key, identity_for_key
from rights_provenance.kernel.time import TestTimeProvider
from rights_provenance.ledger import ProvenanceLedger


@pytest.fixture
def temp_db() -> Iterator[Path]:
    """Provide a temporary database file that's cleaned up after test"""
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    yield db_path

    # Cleanup (WAL mode leaves -wal / -shm companions behind)
    for suffix in ("", "-wal", "-shm"):
        path = Path(str(db_path) + suffix)
        if path.exists():
            path.unlink()


@pytest.fixture
def event_store(temp_db: Path) -> SQLiteEventStore:
    """Provide a fresh event store for each test"""
    return SQLiteEventStore(temp_db)


@pytest.fixture
def test_time() -> TestTimeProvider:
    """
    Provide a controllable time provider for deterministic tests

    Default time: 2025-01-15 12:00:00 UTC
    """
    return TestTimeProvider(datetime(2025, 1, 15, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def policy() -> LedgerPolicy:
    """Provide the default ledger policy"""
    return LedgerPolicy()


@pytest.fixture
def signing_key() -> Ed25519PrivateKey:
    """Signing key of the studio that issues rights in most tests"""
    return generate_signing_key()


@pytest.fixture
def studio(signing_key: Ed25519PrivateKey) -> str:
    """Identity of ``signing_key``"""
    return identity_for_key(signing_key)


@pytest.fixture
def document_registry() -> InMemoryDocumentRegistry:
    """
    Registry pre-loaded with two valid documents

    Fun fact: Paper chain of title binders for a feature film routinely run
    to several hundred pages of assignments, options and quitclaims.
    """
    registry = InMemoryDocumentRegistry()
    registry.register("doc-assignment", b"assignment of rights")
    registry.register("doc-option", b"option agreement")
    return registry


@pytest.fixture
def ledger(
    temp_db: Path,
    document_registry: InMemoryDocumentRegistry,
    policy: LedgerPolicy,
    test_time: TestTimeProvider,
) -> ProvenanceLedger:
    """Provide a ledger on a fresh database with deterministic time"""
    return ProvenanceLedger(
        temp_db,
        document_registry=document_registry,
        policy=policy,
        time_provider=test_time,
    )


@pytest.fixture
def valid_window() -> tuple[datetime, datetime]:
    """A validity window around the default test time"""
    return (
        datetime(2025, 1, 1, tzinfo=timezone.utc),
        datetime(2030, 1, 1, tzinfo=timezone.utc),
    )
