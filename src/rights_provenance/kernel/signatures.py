"""
Transfer signatures - recoverable Ed25519 envelopes

A transfer is authorized when the signature over its message digest recovers
to the identity of the caller asking for the transfer. Ed25519 signatures are
not recoverable on their own, so a signature here is an *envelope*:

    public_key (32 bytes) || ed25519_signature (64 bytes)

Recovery verifies the signature with the embedded key and, if it checks out,
derives the signer identity from that key. Forging an envelope for identity X
requires a private key whose public key hashes to X.

Message construction:

    message_digest  = SHA-256(canonical(right_id, to, timestamp))
    signed_digest   = SHA-256(SIGNED_MESSAGE_PREFIX || message_digest)

``timestamp`` is Unix seconds.

Fun fact: Under the US Copyright Act (17 U.S.C. 204), a transfer of copyright
ownership is not valid unless it is in writing and signed by the owner of
the rights conveyed.
"""

import base64
import hashlib
import json
from pathlib import Path
from typing import Any

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from rights_provenance.kernel.digest import DIGEST_SIZE, digest_bytes

SIGNED_MESSAGE_PREFIX = b"\x19Rights Signed Message:\n32"

PUBLIC_KEY_SIZE = 32
RAW_SIGNATURE_SIZE = 64
ENVELOPE_SIZE = PUBLIC_KEY_SIZE + RAW_SIGNATURE_SIZE


def b64url_encode(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("ascii").rstrip("=")


def b64url_decode(s: str) -> bytes:
    pad = "=" * (-len(s) % 4)
    return base64.urlsafe_b64decode(s + pad)


# ---------------------------------------------------------------------------
# Identities
# ---------------------------------------------------------------------------


def _raw_public_bytes(public_key: Ed25519PublicKey) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )


def identity_from_public_bytes(raw: bytes) -> str:
    """Signer identity: 0x + last 20 bytes of SHA-256(raw public key), hex"""
    return "0x" + hashlib.sha256(raw).digest()[-20:].hex()


def identity_for_key(key: Ed25519PrivateKey | Ed25519PublicKey) -> str:
    """Identity of a private or public key"""
    public_key = key.public_key() if isinstance(key, Ed25519PrivateKey) else key
    return identity_from_public_bytes(_raw_public_bytes(public_key))


def generate_signing_key() -> Ed25519PrivateKey:
    return Ed25519PrivateKey.generate()


# ---------------------------------------------------------------------------
# Key files (OKP JWK)
# ---------------------------------------------------------------------------


def signing_key_to_jwk(key: Ed25519PrivateKey) -> dict[str, Any]:
    """Export a private key as an Ed25519 OKP JWK with its identity as kid"""
    priv_bytes = key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    pub_bytes = _raw_public_bytes(key.public_key())
    return {
        "kty": "OKP",
        "crv": "Ed25519",
        "x": b64url_encode(pub_bytes),
        "d": b64url_encode(priv_bytes),
        "kid": identity_from_public_bytes(pub_bytes),
    }


def signing_key_from_jwk(jwk: dict[str, Any]) -> Ed25519PrivateKey:
    """
    Load a private key from an OKP JWK

    Raises:
        ValueError: If the JWK is not an Ed25519 private key
    """
    if jwk.get("kty") != "OKP" or jwk.get("crv") != "Ed25519":
        raise ValueError("Only Ed25519 OKP keys are supported")
    if "d" not in jwk:
        raise ValueError("JWK has no private component 'd'")
    raw = b64url_decode(str(jwk["d"]))
    if len(raw) != 32:
        raise ValueError(f"Ed25519 private key must be 32 bytes, got {len(raw)}")
    return Ed25519PrivateKey.from_private_bytes(raw)


def save_signing_key(key: Ed25519PrivateKey, path: str | Path) -> None:
    Path(path).write_text(json.dumps(signing_key_to_jwk(key), indent=2), encoding="utf-8")


def load_signing_key(path: str | Path) -> Ed25519PrivateKey:
    return signing_key_from_jwk(json.loads(Path(path).read_text(encoding="utf-8")))


# ---------------------------------------------------------------------------
# Digests, signing and recovery
# ---------------------------------------------------------------------------


def transfer_message_digest(right_id: int, to: str, timestamp: int) -> bytes:
    """Digest over the transfer parameters (right_id, to, timestamp)"""
    return digest_bytes(right_id, to, timestamp)


def signed_message_digest(message_digest: bytes) -> bytes:
    """Apply the signed-message prefix convention to a 32-byte digest"""
    if len(message_digest) != DIGEST_SIZE:
        raise ValueError(f"Message digest must be {DIGEST_SIZE} bytes")
    return hashlib.sha256(SIGNED_MESSAGE_PREFIX + message_digest).digest()


def sign_digest(key: Ed25519PrivateKey, message_digest: bytes) -> bytes:
    """Produce a recoverable signature envelope over a message digest"""
    raw_sig = key.sign(signed_message_digest(message_digest))
    return _raw_public_bytes(key.public_key()) + raw_sig


def sign_right_transfer(
    key: Ed25519PrivateKey, right_id: int, to: str, timestamp: int
) -> bytes:
    """Sign the transfer of ``right_id`` to ``to`` at ``timestamp`` (Unix seconds)"""
    return sign_digest(key, transfer_message_digest(right_id, to, timestamp))


def recover_signer(message_digest: bytes, signature: bytes) -> str | None:
    """
    Recover the signer identity from (digest, signature envelope)

    Returns:
        The signer identity, or None if the envelope is malformed or the
        signature does not verify.
    """
    if len(signature) != ENVELOPE_SIZE or len(message_digest) != DIGEST_SIZE:
        return None

    pub_bytes = signature[:PUBLIC_KEY_SIZE]
    raw_sig = signature[PUBLIC_KEY_SIZE:]
    try:
        public_key = Ed25519PublicKey.from_public_bytes(pub_bytes)
        public_key.verify(raw_sig, signed_message_digest(message_digest))
    except (InvalidSignature, ValueError):
        return None
    return identity_from_public_bytes(pub_bytes)


def verify_right_transfer_signature(
    right_id: int,
    to: str,
    signature: bytes,
    caller: str,
    timestamp: int,
) -> bool:
    """
    True iff ``signature`` over (right_id, to, timestamp) recovers to ``caller``
    """
    signer = recover_signer(transfer_message_digest(right_id, to, timestamp), signature)
    return signer is not None and signer == caller
