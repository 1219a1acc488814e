# src/order_status_sync/api/replay.py
from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional
import json

from order_status_sync.models import TrackingEvent
from .normalize import normalize_tracking


@dataclass
class ReplayCarrierClient:
    """Carrier client that serves recorded Palletforce bodies from one JSON file.

    The file may contain:
      - a JSON array of bodies, each with a top-level `trackingNumber` (or one
        inside its `trackingData` events), optionally an `orderName`;
      - a JSON object mapping tracking number -> body.

    An index is built on initialization; unknown tracking numbers replay as an
    empty event list. No network access.
    """

    replay_file: Path
    _index: dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _by_order_name: dict[str, str] = field(
        default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self.replay_file = Path(self.replay_file)
        if not self.replay_file.exists():
            raise ValueError(f"Replay file does not exist: {self.replay_file}")
        if not self.replay_file.is_file():
            raise ValueError(
                "ReplayCarrierClient requires a single JSON file; directories are not supported."
            )

        raw = json.loads(self.replay_file.read_text(encoding="utf-8"))
        if isinstance(raw, dict) and "trackingData" not in raw:
            for tn, body in raw.items():
                self._add(str(tn), body)
            return

        entries: List[Any] = raw if isinstance(raw, list) else [raw]
        for entry in entries:
            for tn in self._extract_tracking_numbers(entry):
                self._add(tn, entry)

    def _add(self, tn: str, body: Any) -> None:
        self._index[tn] = body
        if isinstance(body, dict) and body.get("orderName"):
            self._by_order_name.setdefault(str(body["orderName"]), tn)

    def _extract_tracking_numbers(self, payload: Any) -> List[str]:
        results: List[str] = []
        if not isinstance(payload, dict):
            return results
        tn = payload.get("trackingNumber")
        if tn:
            results.append(str(tn))
        for ev in payload.get("trackingData") or []:
            if isinstance(ev, dict) and ev.get("trackingNumber"):
                results.append(str(ev["trackingNumber"]))

        seen: set[str] = set()
        out_list: List[str] = []
        for r in results:
            if r not in seen:
                seen.add(r)
                out_list.append(r)
        return out_list

    def fetch_events(self, tracking_number: str) -> List[TrackingEvent]:
        body = self._index.get(str(tracking_number), {})
        return normalize_tracking(body, tracking_number=str(tracking_number))

    def tracking_number_for_order_name(self, order_name: str) -> Optional[str]:
        return self._by_order_name.get(str(order_name))
