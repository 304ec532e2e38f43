"""
Guardianship Projections - read models built from events

The registry is a denormalized summary per guardianship, rebuilt from the
event outbox at startup and kept current as new events are saved. The
authoritative state lives in the snapshots; this is for listing and counting.
"""

from typing import Any

from guardianship_engine.kernel.events import Event
from guardianship_engine.kernel.metrics import active_guardianships_total


class GuardianshipRegistry:
    """
    Projection: Registry of all guardianships

    Tracks ward, guardians, primary guardian and status for fast lookup.
    """

    def __init__(self) -> None:
        self.guardianships: dict[str, dict[str, Any]] = {}

    def apply_event(self, event: Event) -> None:
        """Apply an event to update projection state"""
        payload = event.payload
        if event.event_type == "GuardianshipCreated":
            self.guardianships[payload["guardianship_id"]] = {
                "guardianship_id": payload["guardianship_id"],
                "ward_id": payload["ward_id"],
                "guardianship_type": payload["guardianship_type"],
                "jurisdiction": payload["jurisdiction"],
                "established_date": payload["established_date"],
                "primary_guardian_id": payload["primary_guardian_id"],
                "active_guardian_ids": [payload["primary_guardian_id"]],
                "is_active": True,
                "dissolved_at": None,
                "dissolution_reason": None,
                "last_report_date": None,
                "version": event.version,
            }
            self._refresh_gauge()
            return

        entry = self.guardianships.get(event.aggregate_id)
        if entry is None:
            return
        entry["version"] = event.version

        if event.event_type == "MultipleGuardiansAssigned":
            entry["active_guardian_ids"] = list(payload["active_guardian_ids"])

        elif event.event_type == "GuardianReplaced":
            active = [
                gid for gid in entry["active_guardian_ids"]
                if gid != payload["outgoing_guardian_id"]
            ]
            active.append(payload["replacement_guardian_id"])
            entry["active_guardian_ids"] = active
            if payload["is_primary"]:
                entry["primary_guardian_id"] = payload["replacement_guardian_id"]

        elif event.event_type == "AnnualReportFiled":
            entry["last_report_date"] = payload["report_date"]

        elif event.event_type == "GuardianshipDissolved":
            entry["is_active"] = False
            entry["dissolved_at"] = payload["dissolved_at"]
            entry["dissolution_reason"] = payload["reason"]
            entry["active_guardian_ids"] = []
            entry["primary_guardian_id"] = None
            self._refresh_gauge()

    def _refresh_gauge(self) -> None:
        active_guardianships_total.set(self.counts()["active"])

    def get(self, guardianship_id: str) -> dict[str, Any] | None:
        return self.guardianships.get(guardianship_id)

    def list_active(self) -> list[dict[str, Any]]:
        """List all active guardianships"""
        return [g for g in self.guardianships.values() if g["is_active"]]

    def list_all(self) -> list[dict[str, Any]]:
        return list(self.guardianships.values())

    def counts(self) -> dict[str, int]:
        active = sum(1 for g in self.guardianships.values() if g["is_active"])
        return {
            "total": len(self.guardianships),
            "active": active,
            "dissolved": len(self.guardianships) - active,
        }

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dict for storage"""
        return {"guardianships": self.guardianships}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "GuardianshipRegistry":
        """Deserialize from dict"""
        registry = cls()
        registry.guardianships = data.get("guardianships", {})
        return registry
