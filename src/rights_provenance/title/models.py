"""
Chain of Title Models

A TitleEntry is one link in a right's provenance chain: "on this date, this
recorder filed this kind of event, backed by this document". Each entry
commits to its predecessor through previous_entry_hash.
"""

from datetime import datetime

from pydantic import BaseModel, Field


class TitleEntry(BaseModel):
    """
    One immutable chain of title entry

    Attributes:
        right_id: The right this entry documents (by value only)
        document_id: Supporting document, validated at append time
        timestamp: When the entry was appended
        entry_type: Free text, e.g. "ASSIGNMENT", "OPTION_EXERCISED"
        recorder: Identity that appended the entry
        previous_entry_hash: Digest of the previous entry, or ZERO_DIGEST
    """

    right_id: int
    document_id: str
    timestamp: datetime
    entry_type: str
    recorder: str
    previous_entry_hash: str

    model_config = {"frozen": True}


class ChainVerification(BaseModel):
    """
    Detailed outcome of replaying a chain

    ``intact`` is the same boolean verify_title_chain returns; the other
    fields say where and why a replay stopped.
    """

    right_id: int
    intact: bool
    entry_count: int
    failed_index: int | None = None
    reason: str | None = None
    computed_hash: str | None = None
    stored_hash: str | None = None

    @property
    def is_empty(self) -> bool:
        return self.entry_count == 0


class ChainSummary(BaseModel):
    """Compact view of a chain for listings and health checks"""

    right_id: int
    entry_count: int = Field(..., ge=0)
    latest_hash: str
