"""
Chain of Title Commands
"""

from pydantic import BaseModel, Field


class AddTitleEntry(BaseModel):
    """Append a provenance entry to a right's chain of title"""

    right_id: int
    document_id: str = Field(..., min_length=1)
    entry_type: str
