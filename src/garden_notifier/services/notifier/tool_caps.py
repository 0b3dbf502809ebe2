"""
Tool Cap Guard.

Some tools stop being useful past a fixed quantity (there is no point
buying a second shovel). Once the live inventory reaches the cap, popup
alerts for that tool are forced off without touching the stored preference.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from ...catalog.items import SectionType, split_catalog_id
from ...core.logging import get_logger

logger = get_logger(__name__)

TOOL_CAPS: Mapping[str, int] = MappingProxyType(
    {
        "Shovel": 1,
        "WateringCan": 99,
    }
)


def _quantity(value: Any) -> int:
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


@dataclass
class ToolCapGuard:
    """Answers whether a tool has reached its quantity cap."""

    caps: Mapping[str, int] = field(default_factory=lambda: TOOL_CAPS)
    _quantities: dict[str, int] = field(default_factory=dict, repr=False)

    def update(self, raw_inventory: Any) -> None:
        """
        Replace the live tool-quantity snapshot.

        Args:
            raw_inventory: List of {"toolId", "quantity"} items; anything
                else clears the snapshot
        """
        quantities: dict[str, int] = {}
        if isinstance(raw_inventory, list):
            for item in raw_inventory:
                if not isinstance(item, dict) or item.get("toolId") is None:
                    continue
                quantities[str(item["toolId"])] = _quantity(item.get("quantity"))
        else:
            logger.debug("Ignoring non-list tool inventory: %r", type(raw_inventory))
        self._quantities = quantities

    def quantity(self, tool_id: str) -> int:
        return self._quantities.get(tool_id, 0)

    def is_capped(self, tool_id: str) -> bool:
        """True if the tool's live quantity has reached its cap."""
        cap = self.caps.get(tool_id)
        if not cap:
            return False
        return self.quantity(tool_id) >= cap

    def is_id_capped(self, item_id: str) -> bool:
        """Cap check on a catalog id; non-tool ids are never capped."""
        parts = split_catalog_id(item_id)
        if parts is None or parts[0] is not SectionType.TOOL:
            return False
        return self.is_capped(parts[1])
