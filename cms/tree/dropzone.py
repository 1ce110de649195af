"""Classification géométrique d'un dépôt : insertion en frère ou en enfant.

Fonction pure de (largeur de l'élément glissé, décalage horizontal du
pointeur, zone survolée), testable sans bibliothèque de drag-and-drop.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from cms.core.config import settings
from cms.tree.store import PageId


class ZoneKind(str, Enum):
    BETWEEN = "between"                # avant le premier élément ou après chaque élément
    CHILD = "child"                    # sur la page elle-même
    EMPTY_CHILDREN = "empty_children"  # emplacement d'une page sans enfants


class PlacementKind(str, Enum):
    SIBLING = "sibling"
    CHILD = "child"


@dataclass(frozen=True)
class DropZone:
    kind: ZoneKind
    # groupe de frères dans lequel une insertion en frère atterrit
    parent_id: Optional[PageId]
    index: int
    # page adjacente (zone BETWEEN) ou page propriétaire (CHILD, EMPTY_CHILDREN)
    anchor_id: Optional[PageId] = None

    @property
    def zone_id(self) -> str:
        if self.kind == ZoneKind.BETWEEN:
            return f"between:{self.parent_id}:{self.index}"
        return f"{self.kind.value}:{self.anchor_id}"


@dataclass(frozen=True)
class DragMetrics:
    """Dimensions de l'élément glissé, mesurées au début du drag."""
    width: float
    height: float = 0.0


@dataclass(frozen=True)
class DropPlacement:
    kind: PlacementKind
    parent_id: Optional[PageId]
    # None = en dernière position du groupe cible
    index: Optional[int]


def classify_drop(zone: DropZone, pointer_x: float, dragged: Union[DragMetrics, float],
                  threshold: float = None) -> DropPlacement:
    if threshold is None:
        threshold = settings.DROP_CHILD_THRESHOLD
    width = dragged.width if isinstance(dragged, DragMetrics) else float(dragged)

    if zone.kind == ZoneKind.EMPTY_CHILDREN:
        return DropPlacement(PlacementKind.CHILD, zone.anchor_id, 0)

    # zones BETWEEN et CHILD : seul le seuil horizontal décide
    if pointer_x <= threshold * width or zone.anchor_id is None:
        return DropPlacement(PlacementKind.SIBLING, zone.parent_id, zone.index)
    return DropPlacement(PlacementKind.CHILD, zone.anchor_id, 0)
