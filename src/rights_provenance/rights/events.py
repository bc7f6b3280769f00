"""
Rights Module Events - Facts about issued rights

All of these live in the right's own stream ("right-<id>"). Custody events
are kept next to the rights events so a transfer record and the custody
move it causes are always appended together.
"""

from datetime import datetime

from pydantic import BaseModel


class RightCreated(BaseModel):
    """
    A right was issued - either an original or a derived license

    Notification fields: right_id, right_type, owner.
    """

    right_id: int
    right_type: str
    owner: str
    valid_from: datetime
    valid_until: datetime
    territories: list[str]
    platforms: list[str]
    is_exclusive: bool
    parent_right_id: int
    created_at: datetime


class CustodyIssued(BaseModel):
    """Custody units were minted to a holder"""

    right_id: int
    holder: str
    quantity: int


class CustodyMoved(BaseModel):
    """Custody units moved between holders"""

    right_id: int
    from_holder: str
    to_holder: str
    quantity: int


class RightTransferred(BaseModel):
    """
    A signature-verified transfer was recorded

    Notification fields: right_id, from_actor, to_actor, transfer_type.
    """

    right_id: int
    from_actor: str
    to_actor: str
    transfer_type: str
    signature: str  # hex
    transferred_at: datetime
    derived_right_id: int | None = None


class RightRestrictionAdded(BaseModel):
    """A restriction was set on a right (overwriting any previous details)"""

    right_id: int
    restriction_type: str
    details: str
    added_by: str
    added_at: datetime
