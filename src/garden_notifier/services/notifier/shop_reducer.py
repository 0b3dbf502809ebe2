"""
Shop Snapshot Reducer.

Turns raw shop snapshots into notifier rows merged with live preference
state, and decides when row subscribers need to hear about it. Row
membership is tracked with a structural signature (the sorted id set) so
that restock-timer ticks do not renotify.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Any

from ...catalog.items import SHOP_SECTIONS, CatalogIndex, make_catalog_id, split_catalog_id
from ...core.logging import get_logger
from .formatting import now_ms
from .prefs import PreferenceStore
from .tool_caps import ToolCapGuard
from .types import (
    NotifierCounts,
    NotifierRow,
    NotifierState,
    PrefFlag,
    PurchasesSnapshot,
    ShopsSnapshot,
)

logger = get_logger(__name__)


def compute_signature(ids: list[str]) -> str:
    """Structural signature of a row set: sorted ids joined with '|'."""
    return "|".join(sorted(ids))


def detect_restock(previous: ShopsSnapshot | None, current: ShopsSnapshot) -> list[str]:
    """
    Sections whose restock countdown went up between two snapshots.

    A countdown only ever decreases between restocks, so an increase means
    the section inventory was replaced.
    """
    if previous is None:
        return []
    return [
        spec.key
        for spec in SHOP_SECTIONS
        if previous.section(spec.key).seconds_until_restock
        < current.section(spec.key).seconds_until_restock
    ]


def purchased_count_for_id(item_id: str, purchases: PurchasesSnapshot | None) -> int:
    """How many of an item were bought since the last restock."""
    if purchases is None:
        return 0
    parts = split_catalog_id(item_id)
    if parts is None:
        return 0
    section, raw_id = parts
    key = next(spec.key for spec in SHOP_SECTIONS if spec.type is section)
    count = purchases.section(key).purchases.get(raw_id)
    if isinstance(count, bool) or not isinstance(count, (int, float)):
        return 0
    return int(count) if count > 0 else 0


class ShopReducer:
    """Resident row map rebuilt from each shop snapshot."""

    def __init__(self, index: CatalogIndex, prefs: PreferenceStore, caps: ToolCapGuard) -> None:
        self._index = index
        self._prefs = prefs
        self._caps = caps
        self._rows: dict[str, NotifierRow] = {}
        self._signature: str | None = None
        self.state: NotifierState | None = None

    @property
    def signature(self) -> str | None:
        return self._signature

    def effective_popup(self, item_id: str) -> bool:
        """Stored popup flag, forced off while a tool is capped."""
        if self._caps.is_id_capped(item_id):
            return False
        return PrefFlag.POPUP in self._prefs.get_flags(item_id)

    def _build_state(self) -> NotifierState:
        rows = list(self._rows.values())
        return NotifierState(
            updated_at=now_ms(),
            rows=rows,
            counts=NotifierCounts(items=len(rows), followed=sum(1 for r in rows if r.followed)),
        )

    def reduce(self, raw: Any) -> bool:
        """
        Rebuild rows from a raw shop snapshot.

        Returns:
            True if the row id set changed and subscribers should be notified
        """
        snapshot = raw if isinstance(raw, ShopsSnapshot) else ShopsSnapshot.coerce(raw)
        seen: set[str] = set()

        for spec in SHOP_SECTIONS:
            for entry in snapshot.section(spec.key).inventory:
                raw_id = entry.get(spec.id_field)
                if raw_id is None:
                    continue
                item_id = make_catalog_id(spec.type, raw_id)
                seen.add(item_id)

                meta = self._index.get(item_id)
                self._rows[item_id] = NotifierRow(
                    id=item_id,
                    type=spec.type,
                    name=meta.name if meta else str(raw_id),
                    rarity=meta.rarity if meta else None,
                    popup=self.effective_popup(item_id),
                )

        for item_id in [i for i in self._rows if i not in seen]:
            del self._rows[item_id]

        self.state = self._build_state()
        signature = compute_signature(list(self._rows))
        if signature == self._signature:
            return False

        logger.debug("Shop row set changed: %d rows", len(self._rows))
        self._signature = signature
        return True

    def recompute_from_cache(self) -> bool:
        """
        Re-apply preference and cap state to the cached rows.

        Returns:
            True if there is a state to flush (always notify in that case)
        """
        if self.state is None:
            return False
        for item_id, row in list(self._rows.items()):
            self._rows[item_id] = replace(row, popup=self.effective_popup(item_id))
        self.state = self._build_state()
        return True

    def snapshot_state(self) -> NotifierState | None:
        """Copy of the current state safe to hand to subscribers."""
        if self.state is None:
            return None
        return NotifierState(
            updated_at=self.state.updated_at,
            rows=list(self.state.rows),
            counts=self.state.counts,
        )
