"""
Rights Module Invariants - pure checks used by handlers and queries

Scope matching, expiry, existence and authority rules live here as plain
functions so they can be tested without a ledger or a database.
"""

from datetime import datetime

from rights_provenance.kernel.errors import (
    InsufficientCustody,
    InvalidTransferSignature,
    NotRightOwner,
    RightNotFound,
)
from rights_provenance.kernel.policy import LedgerPolicy
from rights_provenance.kernel.time import unix_seconds
from rights_provenance.rights.custody import OwnershipLedger
from rights_provenance.rights.models import Right

# ---------------------------------------------------------------------------
# Territory / platform matching
# ---------------------------------------------------------------------------


def scope_matches(requested: str, scope: list[str], wildcard: str) -> bool:
    """
    True if ``requested`` is listed in ``scope`` or ``scope`` holds the wildcard

    Comparison is exact and case-sensitive: "us" does not match "US".
    """
    return requested in scope or wildcard in scope


def territory_matches(right: Right, territory: str, policy: LedgerPolicy) -> bool:
    return scope_matches(territory, right.territories, policy.territory_wildcard)


def platform_matches(right: Right, platform: str, policy: LedgerPolicy) -> bool:
    return scope_matches(platform, right.platforms, policy.platform_wildcard)


def is_right_valid(
    right: Right,
    territory: str,
    platform: str,
    now: datetime,
    policy: LedgerPolicy,
) -> bool:
    """
    Validity of a right for a (territory, platform) pair at ``now``

    Expiry dominates scope. valid_from is not consulted: a right issued with
    a future start date is already usable.
    """
    if right.is_expired(now):
        return False
    return territory_matches(right, territory, policy) and platform_matches(
        right, platform, policy
    )


# ---------------------------------------------------------------------------
# Existence and authority
# ---------------------------------------------------------------------------


def validate_right_exists(right_id: int, rights: dict[int, Right]) -> Right:
    """
    Raises:
        RightNotFound: If the right was never issued
    """
    right = rights.get(right_id)
    if right is None:
        raise RightNotFound(right_id)
    return right


def validate_restriction_authority(
    right: Right,
    caller: str,
    custody: OwnershipLedger,
    policy: LedgerPolicy,
) -> None:
    """
    With the default policy only the original owner may restrict a right,
    even after custody has been transferred away.

    Raises:
        NotRightOwner: If the caller lacks restriction authority
    """
    if policy.restriction_authority == "custodian":
        if custody.balance_of(caller, right.right_id) > 0:
            return
    elif caller == right.original_owner:
        return
    raise NotRightOwner(right.right_id, caller)


def validate_custody(
    custody: OwnershipLedger, right_id: int, holder: str, quantity: int = 1
) -> None:
    """
    Raises:
        InsufficientCustody: If ``holder`` holds fewer than ``quantity`` units
    """
    held = custody.balance_of(holder, right_id)
    if held < quantity:
        raise InsufficientCustody(right_id, holder, held, quantity)


def resolve_signature_timestamp(
    right_id: int,
    caller: str,
    now: datetime,
    signed_at: int | None,
    policy: LedgerPolicy,
) -> int:
    """
    Timestamp the transfer signature must cover, in Unix seconds

    Without ``signed_at`` this is the verification time itself. With it, the
    caller-chosen timestamp is used as long as it is not in the future and
    not older than ``policy.signature_max_age_seconds``.

    Raises:
        InvalidTransferSignature: If signed_at is outside the accepted window
    """
    now_seconds = unix_seconds(now)
    if signed_at is None:
        return now_seconds

    age = now_seconds - signed_at
    if age < 0:
        raise InvalidTransferSignature(right_id, caller, "signed_at is in the future")
    if age > policy.signature_max_age_seconds:
        raise InvalidTransferSignature(
            right_id,
            caller,
            f"signature is {age}s old, maximum is {policy.signature_max_age_seconds}s",
        )
    return signed_at
