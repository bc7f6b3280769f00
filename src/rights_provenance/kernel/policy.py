"""
Ledger Policy - tunable parameters of the rights ledger

The LedgerPolicy gathers the constants that shape rights semantics (scope
wildcards, license naming, signature freshness, who may restrict a right) in
one validated place instead of scattering them through handlers.
"""

from typing import Literal

from pydantic import BaseModel, Field


class LedgerPolicy(BaseModel):
    """
    Rights ledger parameters

    The defaults reproduce the reference semantics exactly; the alternative
    settings are explicit opt-ins.
    """

    policy_version: str = Field(
        default="1.0",
        description="Policy version for tracking changes over time",
    )

    # Scope matching
    territory_wildcard: str = Field(
        default="GLOBAL",
        min_length=1,
        description="Territory entry that matches any requested territory",
    )

    platform_wildcard: str = Field(
        default="ALL",
        min_length=1,
        description="Platform entry that matches any requested platform",
    )

    # License derivation
    license_suffix: str = Field(
        default="_LICENSE",
        description="Appended to the parent's right_type for derived licenses",
    )

    # Transfer signatures
    signature_max_age_seconds: int = Field(
        default=300,
        ge=0,
        le=86400,
        description=(
            "Maximum age of a caller-supplied signed_at timestamp. Only used when "
            "a transfer is submitted with signed_at; otherwise the digest is bound "
            "to the verification time."
        ),
    )

    # Restrictions
    restriction_authority: Literal["original_owner", "custodian"] = Field(
        default="original_owner",
        description=(
            "Who may add restrictions: the right's original_owner, or any identity "
            "currently holding a custody unit"
        ),
    )

    # Chain of title
    title_requires_existing_right: bool = Field(
        default=False,
        description="Reject title entries for right ids the ledger has never issued",
    )

    model_config = {
        "frozen": True,
        "json_schema_extra": {
            "description": "Parameters governing rights scope, licensing and authority"
        },
    }
