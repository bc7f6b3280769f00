"""
Kernel - Core event sourcing and cryptographic infrastructure

The kernel provides the machinery the rights and title modules build on:
the append-only event store, canonical digests, transfer signatures, the
right id allocator, per-right mutation guards, logging and metrics.
"""

from rights_provenance.kernel.digest import ZERO_DIGEST, canonical_bytes, digest_fields
from rights_provenance.kernel.errors import (
    CommandIdempotencyViolation,
    EventStoreError,
    InsufficientCustody,
    InvalidDocument,
    InvalidTransferSignature,
    NotFound,
    NotRightOwner,
    ProvenanceError,
    ReentrantMutation,
    RightNotFound,
    StreamVersionConflict,
    Unauthorized,
)
from rights_provenance.kernel.events import Event
from rights_provenance.kernel.ids import RightIdAllocator, generate_id
from rights_provenance.kernel.policy import LedgerPolicy
from rights_provenance.kernel.time import RealTimeProvider, TestTimeProvider, TimeProvider

__all__ = [
    # IDs
    "RightIdAllocator",
    "generate_id",
    # Time
    "TimeProvider",
    "RealTimeProvider",
    "TestTimeProvider",
    # Events & policy
    "Event",
    "LedgerPolicy",
    # Digests
    "ZERO_DIGEST",
    "canonical_bytes",
    "digest_fields",
    # Errors
    "ProvenanceError",
    "EventStoreError",
    "CommandIdempotencyViolation",
    "StreamVersionConflict",
    "NotFound",
    "RightNotFound",
    "Unauthorized",
    "InvalidTransferSignature",
    "NotRightOwner",
    "InvalidDocument",
    "InsufficientCustody",
    "ReentrantMutation",
]
