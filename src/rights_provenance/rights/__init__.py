"""
Rights Module - issuance, signed transfers, licenses and restrictions

This module implements the rights ledger:
- Issuing original rights scoped by territory and platform
- Signature-authenticated transfers (full custody moves and licenses)
- Derived, non-exclusive licenses tracked through parent_right_id
- Owner-controlled restrictions
- Validity checks honoring the GLOBAL / ALL wildcards
"""

from rights_provenance.rights.models import Right, RightTransfer, TransferType

__all__ = [
    "Right",
    "RightTransfer",
    "TransferType",
]
