from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from green_access_map.config import THRESHOLD_MAX, THRESHOLD_MIN


@dataclass
class SessionState:
    """All mutable interaction state of one viewer session.

    `selected_id` is None while the selected parcel is outside the current
    parcels snapshot; the selection itself lives in `selected_key`.
    """

    selected_id: Optional[int] = None
    selected_key: Optional[Any] = None
    hovered_id: Optional[int] = None
    hovered_key: Optional[Any] = None
    threshold: int = THRESHOLD_MAX
    slider_value: int = THRESHOLD_MIN
    playing: bool = False
    viewport_issued: int = 0
    viewport_applied: int = 0
    selection_seq: int = 0
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def mode(self) -> str:
        return "idle" if self.selected_key is None else "selected"

    def next_viewport_seq(self) -> int:
        self.viewport_issued += 1
        return self.viewport_issued

    def next_selection_seq(self) -> int:
        self.selection_seq += 1
        return self.selection_seq

    def bump(self, key: str) -> None:
        self.stats[key] = self.stats.get(key, 0) + 1

    def snapshot(self) -> Dict[str, Any]:
        return {
            "mode": self.mode,
            "selected_id": self.selected_id,
            "selected_key": self.selected_key,
            "hovered_id": self.hovered_id,
            "hovered_key": self.hovered_key,
            "threshold": self.threshold,
            "slider_value": self.slider_value,
            "playing": self.playing,
            "viewport_issued": self.viewport_issued,
            "viewport_applied": self.viewport_applied,
            "stats": dict(self.stats),
        }
