"""
Tests for transfer signatures

A signature authorizes a transfer only if it recovers to the caller over
exactly (right_id, to, timestamp).
"""

import hashlib

import pytest

from rights_provenance.kernel.signatures import (
    ENVELOPE_SIZE,
    generate_signing_key,
    identity_for_key,
    load_signing_key,
    recover_signer,
    save_signing_key,
    sign_right_transfer,
    signed_message_digest,
    signing_key_from_jwk,
    signing_key_to_jwk,
    transfer_message_digest,
    verify_right_transfer_signature,
)

TS = 1736942400  # 2025-01-15T12:00:00Z
BUYER = "0x" + "b" * 40


def test_identity_format(signing_key) -> None:
    identity = identity_for_key(signing_key)
    assert identity.startswith("0x")
    assert len(identity) == 42
    assert identity == identity_for_key(signing_key.public_key())


def test_identity_is_tail_of_public_key_hash(signing_key) -> None:
    envelope = sign_right_transfer(signing_key, 1, BUYER, TS)
    public_bytes = envelope[:32]
    assert identity_for_key(signing_key) == "0x" + hashlib.sha256(public_bytes).digest()[-20:].hex()


def test_valid_signature_verifies(signing_key, studio) -> None:
    signature = sign_right_transfer(signing_key, 1, BUYER, TS)

    assert len(signature) == ENVELOPE_SIZE
    assert verify_right_transfer_signature(1, BUYER, signature, studio, TS)


def test_signature_bound_to_each_parameter(signing_key, studio) -> None:
    signature = sign_right_transfer(signing_key, 1, BUYER, TS)

    assert not verify_right_transfer_signature(2, BUYER, signature, studio, TS)
    assert not verify_right_transfer_signature(1, "0x" + "c" * 40, signature, studio, TS)
    assert not verify_right_transfer_signature(1, BUYER, signature, studio, TS + 1)


def test_signature_from_other_key_rejected(studio) -> None:
    intruder = generate_signing_key()
    signature = sign_right_transfer(intruder, 1, BUYER, TS)

    # Valid signature, but it recovers to the intruder, not the studio
    assert not verify_right_transfer_signature(1, BUYER, signature, studio, TS)
    assert verify_right_transfer_signature(1, BUYER, signature, identity_for_key(intruder), TS)


def test_swapped_public_key_rejected(signing_key, studio) -> None:
    """Replacing the embedded key with the caller's key breaks verification"""
    intruder = generate_signing_key()
    forged = sign_right_transfer(intruder, 1, BUYER, TS)
    studio_pub = sign_right_transfer(signing_key, 1, BUYER, TS)[:32]

    assert not verify_right_transfer_signature(1, BUYER, studio_pub + forged[32:], studio, TS)


@pytest.mark.parametrize("signature", [b"", b"\x00" * 10, b"\x00" * ENVELOPE_SIZE, b"\xff" * 200])
def test_malformed_signatures_never_raise(signature: bytes, studio) -> None:
    assert verify_right_transfer_signature(1, BUYER, signature, studio, TS) is False


def test_recover_signer(signing_key, studio) -> None:
    digest = transfer_message_digest(1, BUYER, TS)
    signature = sign_right_transfer(signing_key, 1, BUYER, TS)

    assert recover_signer(digest, signature) == studio
    assert recover_signer(digest[:-1], signature) is None


def test_signed_message_digest_requires_32_bytes() -> None:
    with pytest.raises(ValueError):
        signed_message_digest(b"short")


def test_jwk_round_trip(signing_key, tmp_path) -> None:
    jwk = signing_key_to_jwk(signing_key)
    assert jwk["kty"] == "OKP"
    assert jwk["crv"] == "Ed25519"
    assert jwk["kid"] == identity_for_key(signing_key)

    path = tmp_path / "studio.jwk.json"
    save_signing_key(signing_key, path)
    assert identity_for_key(load_signing_key(path)) == identity_for_key(signing_key)


def test_jwk_rejects_other_key_types() -> None:
    with pytest.raises(ValueError):
        signing_key_from_jwk({"kty": "EC", "crv": "P-256", "d": "AAAA"})
    with pytest.raises(ValueError):
        signing_key_from_jwk({"kty": "OKP", "crv": "Ed25519", "x": "AAAA"})
