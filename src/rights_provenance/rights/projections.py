"""
Rights Module Projections - Read models built from events

Projections are disposable: the façade rebuilds them from the event store on
startup, and applies each new event right after it is appended.
"""

from collections import defaultdict

from rights_provenance.kernel.events import RIGHT_STREAM, Event
from rights_provenance.rights.models import Right, RightTransfer


class RightRegistry:
    """
    Projection: every issued right, plus each right stream's version

    The stream version is what handlers need to append the next event with
    optimistic locking.
    """

    def __init__(self) -> None:
        self.rights: dict[int, Right] = {}
        self.versions: dict[int, int] = {}

    def apply_event(self, event: Event) -> None:
        if event.stream_type != RIGHT_STREAM:
            return

        right_id = event.payload["right_id"]
        self.versions[right_id] = event.version

        if event.event_type == "RightCreated":
            p = event.payload
            self.rights[right_id] = Right(
                right_id=right_id,
                right_type=p["right_type"],
                valid_from=p["valid_from"],
                valid_until=p["valid_until"],
                territories=list(p["territories"]),
                platforms=list(p["platforms"]),
                original_owner=p["owner"],
                parent_right_id=p["parent_right_id"],
                is_exclusive=p["is_exclusive"],
                created_at=p["created_at"],
            )

        elif event.event_type == "RightRestrictionAdded":
            right = self.rights.get(right_id)
            if right is not None:
                right.restrictions[event.payload["restriction_type"]] = event.payload["details"]

    def get(self, right_id: int) -> Right | None:
        return self.rights.get(right_id)

    def exists(self, right_id: int) -> bool:
        return right_id in self.rights

    def version(self, right_id: int) -> int:
        """Current version of the right's stream (0 if never issued)"""
        return self.versions.get(right_id, 0)

    def list_all(self) -> list[Right]:
        return [self.rights[right_id] for right_id in sorted(self.rights)]

    def derived_from(self, parent_right_id: int) -> list[Right]:
        """Licenses derived directly from a parent right, in id order"""
        return [r for r in self.list_all() if r.parent_right_id == parent_right_id]


class TransferHistory:
    """
    Projection: append-only transfer records per right

    Insertion order is chronological order.
    """

    def __init__(self) -> None:
        self.transfers: defaultdict[int, list[RightTransfer]] = defaultdict(list)

    def apply_event(self, event: Event) -> None:
        if event.event_type == "RightTransferred":
            p = event.payload
            self.transfers[p["right_id"]].append(
                RightTransfer(
                    right_id=p["right_id"],
                    from_actor=p["from_actor"],
                    to_actor=p["to_actor"],
                    timestamp=p["transferred_at"],
                    transfer_type=p["transfer_type"],
                    signature=p["signature"],
                    derived_right_id=p.get("derived_right_id"),
                )
            )

    def for_right(self, right_id: int) -> list[RightTransfer]:
        return list(self.transfers.get(right_id, []))
