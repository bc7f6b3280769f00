"""
Custody - who currently holds units of which right

The rights ledger only needs two things from an ownership ledger: a balance
lookup and a list of current holders. Anything implementing OwnershipLedger
can be plugged in; CustodyLedger is the event-sourced default, built from the
CustodyIssued / CustodyMoved events in each right's stream.
"""

from collections import defaultdict
from typing import Protocol

from rights_provenance.kernel.events import Event


class OwnershipLedger(Protocol):
    """Read interface of an external (holder, right, quantity) ledger"""

    def balance_of(self, holder: str, right_id: int) -> int:
        ...

    def holders(self, right_id: int) -> dict[str, int]:
        ...


class CustodyLedger:
    """
    Projection: custody balances per right

    Balances never go negative - handlers check InsufficientCustody before
    emitting CustodyMoved.
    """

    def __init__(self) -> None:
        self.balances: defaultdict[int, dict[str, int]] = defaultdict(dict)

    def apply_event(self, event: Event) -> None:
        if event.event_type == "CustodyIssued":
            p = event.payload
            holders = self.balances[p["right_id"]]
            holders[p["holder"]] = holders.get(p["holder"], 0) + p["quantity"]

        elif event.event_type == "CustodyMoved":
            p = event.payload
            holders = self.balances[p["right_id"]]
            holders[p["from_holder"]] = holders.get(p["from_holder"], 0) - p["quantity"]
            if holders[p["from_holder"]] == 0:
                del holders[p["from_holder"]]
            holders[p["to_holder"]] = holders.get(p["to_holder"], 0) + p["quantity"]

    def balance_of(self, holder: str, right_id: int) -> int:
        return self.balances.get(right_id, {}).get(holder, 0)

    def holders(self, right_id: int) -> dict[str, int]:
        return dict(self.balances.get(right_id, {}))
