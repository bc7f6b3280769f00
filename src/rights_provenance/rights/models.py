"""
Rights Domain Models

A Right is a scoped entitlement over a work - copyright, distribution,
adaptation and so on - bounded by a validity window, a list of territories
and a list of platforms. Derived licenses are Rights too; they point back at
their parent through ``parent_right_id``.

Fun fact: Film distribution deals are routinely carved up by territory AND
platform ("theatrical in France, SVOD worldwide except China"), which is why
both scopes are first-class here.
"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, field_validator

from rights_provenance.kernel.time import as_utc

NO_PARENT = 0


class TransferType(str, Enum):
    """
    Transfer types with a defined effect

    Any other string is accepted by the ledger and recorded in the transfer
    history, but has no custody or derivation effect.
    """

    FULL = "full"  # one custody unit moves from the caller to the recipient
    LICENSE = "license"  # a non-exclusive derived right is issued to the recipient


def transfer_metric_label(transfer_type: str) -> str:
    """Bounded metrics label: every custom transfer label is counted as other"""
    if transfer_type in {t.value for t in TransferType}:
        return transfer_type
    return "other"


class Right(BaseModel):
    """
    A right as currently known to the ledger

    Attributes:
        right_id: Allocated id, never 0 and never reused
        right_type: Free-text category, e.g. "DISTRIBUTION"
        valid_from: Start of validity (informational, not enforced)
        valid_until: Expiry - the right is invalid once now > valid_until
        territories: Territory scope, GLOBAL matches any territory
        platforms: Platform scope, ALL matches any platform
        original_owner: Identity that created (or was licensed) the right
        parent_right_id: 0 for originals, the parent id for licenses
        is_exclusive: Exclusivity flag (licenses are never exclusive)
        restrictions: restriction type -> details, insertion-ordered,
            last write wins per key
    """

    right_id: int = Field(..., ge=1)
    right_type: str
    valid_from: datetime
    valid_until: datetime
    territories: list[str] = Field(default_factory=list)
    platforms: list[str] = Field(default_factory=list)
    original_owner: str
    parent_right_id: int = NO_PARENT
    is_exclusive: bool = False
    restrictions: dict[str, str] = Field(default_factory=dict)
    created_at: datetime

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "right_id": 1,
                    "right_type": "DISTRIBUTION",
                    "valid_from": "2025-01-01T00:00:00Z",
                    "valid_until": "2030-01-01T00:00:00Z",
                    "territories": ["US", "CA"],
                    "platforms": ["ALL"],
                    "original_owner": "0x5c1f0e9d53f4a0b0c5e4c8e1e6f2b7a9d3c4e5f6",
                    "parent_right_id": 0,
                    "is_exclusive": True,
                    "restrictions": {"RATING": "PG-13 cut only"},
                    "created_at": "2025-01-15T10:00:00Z",
                }
            ]
        }
    }

    @field_validator("valid_from", "valid_until", "created_at")
    @classmethod
    def validate_timezone(cls, v: datetime) -> datetime:
        """Records written with naive datetimes replay as UTC"""
        return as_utc(v)

    @property
    def is_license(self) -> bool:
        return self.parent_right_id != NO_PARENT

    def is_expired(self, now: datetime) -> bool:
        """Expiry is strict: valid through valid_until inclusive"""
        return now > self.valid_until

    def restriction_items(self) -> list[tuple[str, str]]:
        """Restrictions in the order their types were first added"""
        return list(self.restrictions.items())


class RightTransfer(BaseModel):
    """
    One entry of a right's transfer history

    Recorded for every transfer that passed signature verification,
    whatever its type. The signature is kept as evidence, hex-encoded; it is
    not re-verified later.
    """

    right_id: int
    from_actor: str
    to_actor: str
    timestamp: datetime
    transfer_type: str
    signature: str
    derived_right_id: int | None = None

    model_config = {"frozen": True}
