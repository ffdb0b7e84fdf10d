"""
Building Directory
==================

An Agent's cache of Building snapshots, fed by the snapshot fanout.

- Keyed by building id, last writer wins
- Eventually consistent: a reader may see a snapshot one broadcast old.
  That is acceptable because the Building re-checks everything.
"""

import threading
from typing import Dict, List, Optional

from ..protocol import BuildingSnapshot


class BuildingDirectory:
    """Thread-safe building_id -> latest snapshot map."""

    def __init__(self):
        self._buildings: Dict[str, BuildingSnapshot] = {}
        self._lock = threading.Lock()

    def update(self, snapshot: BuildingSnapshot) -> bool:
        """
        Insert or replace a building's snapshot.

        Returns True if the building was new.
        """
        with self._lock:
            is_new = snapshot.building_id not in self._buildings
            self._buildings[snapshot.building_id] = snapshot
            return is_new

    def get(self, building_id: str) -> Optional[BuildingSnapshot]:
        with self._lock:
            return self._buildings.get(building_id)

    def has_room(self, building_id: str, room_id: str) -> bool:
        snapshot = self.get(building_id)
        return snapshot is not None and snapshot.has_room(room_id)

    def snapshots(self) -> List[BuildingSnapshot]:
        with self._lock:
            return list(self._buildings.values())

    def __len__(self) -> int:
        with self._lock:
            return len(self._buildings)

    def __contains__(self, building_id: str) -> bool:
        with self._lock:
            return building_id in self._buildings
