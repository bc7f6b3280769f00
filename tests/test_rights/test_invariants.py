"""
Tests for rights invariants - scope matching, expiry, authority
"""

from datetime import datetime, timedelta, timezone

import pytest

from rights_provenance.kernel.errors import (
    InsufficientCustody,
    InvalidTransferSignature,
    NotRightOwner,
    RightNotFound,
)
from rights_provenance.kernel.policy import LedgerPolicy
from rights_provenance.kernel.time import unix_seconds
from rights_provenance.rights.custody import CustodyLedger
from rights_provenance.rights.invariants import (
    is_right_valid,
    resolve_signature_timestamp,
    scope_matches,
    validate_custody,
    validate_restriction_authority,
    validate_right_exists,
)
from rights_provenance.rights.models import Right

NOW = datetime(2025, 1, 15, 12, 0, tzinfo=timezone.utc)
OWNER = "0x" + "a" * 40


def make_right(
    territories: list[str] | None = None,
    platforms: list[str] | None = None,
    valid_until: datetime | None = None,
) -> Right:
    return Right(
        right_id=1,
        right_type="DISTRIBUTION",
        valid_from=datetime(2025, 1, 1, tzinfo=timezone.utc),
        valid_until=valid_until or datetime(2030, 1, 1, tzinfo=timezone.utc),
        territories=territories if territories is not None else ["US", "CA"],
        platforms=platforms if platforms is not None else ["Netflix"],
        original_owner=OWNER,
        created_at=NOW,
    )


class TestScopeMatching:
    def test_exact_member_matches(self) -> None:
        assert scope_matches("US", ["US", "CA"], "GLOBAL")

    def test_wildcard_matches_anything(self) -> None:
        assert scope_matches("JP", ["GLOBAL"], "GLOBAL")

    def test_case_sensitive(self) -> None:
        assert not scope_matches("us", ["US"], "GLOBAL")

    def test_empty_scope_matches_nothing(self) -> None:
        assert not scope_matches("US", [], "GLOBAL")


class TestValidity:
    def test_valid_in_scope(self, policy: LedgerPolicy) -> None:
        assert is_right_valid(make_right(), "US", "Netflix", NOW, policy)

    def test_territory_out_of_scope(self, policy: LedgerPolicy) -> None:
        assert not is_right_valid(make_right(), "FR", "Netflix", NOW, policy)

    def test_platform_out_of_scope(self, policy: LedgerPolicy) -> None:
        assert not is_right_valid(make_right(), "US", "Hulu", NOW, policy)

    def test_wildcards(self, policy: LedgerPolicy) -> None:
        right = make_right(territories=["GLOBAL"], platforms=["ALL"])
        assert is_right_valid(right, "ANY", "ANYTHING", NOW, policy)

    def test_expiry_dominates_wildcards(self, policy: LedgerPolicy) -> None:
        right = make_right(territories=["GLOBAL"], platforms=["ALL"], valid_until=NOW)
        assert is_right_valid(right, "US", "Netflix", NOW, policy)
        assert not is_right_valid(
            right, "US", "Netflix", NOW + timedelta(microseconds=1), policy
        )

    def test_future_start_is_not_enforced(self, policy: LedgerPolicy) -> None:
        right = make_right().model_copy(update={"valid_from": NOW + timedelta(days=30)})
        assert is_right_valid(right, "US", "Netflix", NOW, policy)

    def test_custom_wildcards(self) -> None:
        policy = LedgerPolicy(territory_wildcard="WORLD", platform_wildcard="*")
        right = make_right(territories=["WORLD"], platforms=["*"])
        assert is_right_valid(right, "DE", "Mubi", NOW, policy)
        assert not is_right_valid(make_right(territories=["GLOBAL"]), "DE", "Netflix", NOW, policy)


def test_validate_right_exists() -> None:
    right = make_right()
    assert validate_right_exists(1, {1: right}) is right
    with pytest.raises(RightNotFound):
        validate_right_exists(2, {1: right})


class TestRestrictionAuthority:
    def test_original_owner_allowed(self, policy: LedgerPolicy) -> None:
        validate_restriction_authority(make_right(), OWNER, CustodyLedger(), policy)

    def test_stranger_rejected(self, policy: LedgerPolicy) -> None:
        with pytest.raises(NotRightOwner):
            validate_restriction_authority(make_right(), "0xstranger", CustodyLedger(), policy)

    def test_custodian_mode_uses_custody(self) -> None:
        policy = LedgerPolicy(restriction_authority="custodian")
        custody = CustodyLedger()
        custody.balances[1] = {"0xholder": 1}

        validate_restriction_authority(make_right(), "0xholder", custody, policy)
        with pytest.raises(NotRightOwner):
            # The original owner no longer holds custody
            validate_restriction_authority(make_right(), OWNER, custody, policy)


def test_validate_custody() -> None:
    custody = CustodyLedger()
    custody.balances[1] = {OWNER: 1}

    validate_custody(custody, 1, OWNER)
    with pytest.raises(InsufficientCustody) as exc_info:
        validate_custody(custody, 1, "0xnobody")
    assert exc_info.value.held == 0


class TestSignatureTimestamp:
    def test_defaults_to_now(self, policy: LedgerPolicy) -> None:
        assert resolve_signature_timestamp(1, OWNER, NOW, None, policy) == unix_seconds(NOW)

    def test_recent_signed_at_accepted(self, policy: LedgerPolicy) -> None:
        signed_at = unix_seconds(NOW) - 60
        assert resolve_signature_timestamp(1, OWNER, NOW, signed_at, policy) == signed_at

    def test_stale_signed_at_rejected(self, policy: LedgerPolicy) -> None:
        signed_at = unix_seconds(NOW) - policy.signature_max_age_seconds - 1
        with pytest.raises(InvalidTransferSignature):
            resolve_signature_timestamp(1, OWNER, NOW, signed_at, policy)

    def test_future_signed_at_rejected(self, policy: LedgerPolicy) -> None:
        with pytest.raises(InvalidTransferSignature):
            resolve_signature_timestamp(1, OWNER, NOW, unix_seconds(NOW) + 5, policy)
