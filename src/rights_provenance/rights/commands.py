"""
Rights Module Commands - Intentions to change rights state

Commands carry what a caller asked for. Handlers check them against the
current projections and turn them into events.

Note that CreateRight deliberately does not validate the validity window or
scope strings - issuers are trusted to supply sane values.
"""

from datetime import datetime

from pydantic import BaseModel, Field, field_validator

from rights_provenance.kernel.time import as_utc


class CreateRight(BaseModel):
    """Issue a new original right to the caller"""

    right_type: str
    valid_from: datetime
    valid_until: datetime
    territories: list[str] = Field(default_factory=list)
    platforms: list[str] = Field(default_factory=list)
    is_exclusive: bool = False

    @field_validator("valid_from", "valid_until")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        """Naive datetimes are taken as UTC"""
        return as_utc(v)


class TransferRight(BaseModel):
    """
    Transfer a right, authorized by a signature from the caller

    If signed_at is None the signature must cover the verification-time
    timestamp; otherwise it must cover signed_at, which has to be recent.
    """

    right_id: int
    to: str = Field(..., min_length=1)
    transfer_type: str = Field(..., min_length=1)
    signature: bytes
    signed_at: int | None = None


class AddRightRestriction(BaseModel):
    """Set (or overwrite) one restriction on a right"""

    right_id: int
    restriction_type: str = Field(..., min_length=1)
    details: str
