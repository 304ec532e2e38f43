"""
Guardianship Repository - version-checked persistence of the aggregate

Saves a guardianship as a snapshot plus the events its commands emitted, in
one transaction. The caller states which version it loaded; if someone else
has saved since, the write is rejected with StreamVersionConflict and the
caller must reload and retry. Nothing here retries a conflict.
"""

from guardianship_engine.guardianship.aggregate import Guardianship
from guardianship_engine.guardianship.events import AGGREGATE_TYPE
from guardianship_engine.kernel.event_store import SQLiteEventStore
from guardianship_engine.kernel.events import Event
from guardianship_engine.kernel.logging import get_logger
from guardianship_engine.kernel.statutory_policy import StatutoryPolicy
from guardianship_engine.kernel.time import RealTimeProvider, TimeProvider

logger = get_logger(__name__)


class GuardianshipRepository:
    """Loads and saves guardianships through the SQLite snapshot store"""

    def __init__(
        self,
        store: SQLiteEventStore,
        time_provider: TimeProvider | None = None,
        policy: StatutoryPolicy | None = None,
    ) -> None:
        self.store = store
        self.time_provider = time_provider or RealTimeProvider()
        self.policy = policy or StatutoryPolicy()

    def save(self, guardianship: Guardianship, expected_version: int) -> list[Event]:
        """
        Persist a guardianship and hand over its pending events

        Args:
            guardianship: Aggregate after one or more commands
            expected_version: Version it had when loaded (0 if new)

        Returns:
            The events written (empty if nothing changed)

        Raises:
            StreamVersionConflict: If the stored version is not expected_version
        """
        if guardianship.version == expected_version:
            return []

        stored = self.store.commit(
            stream_id=guardianship.guardianship_id,
            stream_type=AGGREGATE_TYPE,
            expected_version=expected_version,
            new_version=guardianship.version,
            state=guardianship.to_snapshot(),
            events=guardianship.pending_events,
            updated_at=self.time_provider.now(),
        )
        guardianship.pull_events()

        logger.debug(
            "Guardianship saved",
            guardianship_id=guardianship.guardianship_id,
            version=guardianship.version,
            events=len(stored),
        )
        return stored

    def find(self, guardianship_id: str) -> Guardianship | None:
        """Load a guardianship, or None if it was never saved"""
        loaded = self.store.load_snapshot(guardianship_id)
        if loaded is None:
            return None
        _, state = loaded
        return Guardianship.from_snapshot(
            state, time_provider=self.time_provider, policy=self.policy
        )

    def find_by_ward(self, ward_id: str) -> list[Guardianship]:
        """All guardianships (active or dissolved) of a ward"""
        found = []
        for guardianship_id in self.list_ids():
            guardianship = self.find(guardianship_id)
            if guardianship is not None and guardianship.ward.ward_id == ward_id:
                found.append(guardianship)
        return found

    def list_ids(self) -> list[str]:
        return self.store.list_streams(AGGREGATE_TYPE)

    def events_for(self, guardianship_id: str) -> list[Event]:
        """Audit trail of a guardianship in version order"""
        return self.store.load_stream(guardianship_id)
