"""Moteurs de réordonnancement (même parent) et de re-parentage (changement de parent).

Les moteurs calculent un MoveResult à partir du PageStore sans le modifier ;
PageStore.apply écrit ensuite le résultat.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from cms.core.errors import InvalidMove
from cms.tree.dropzone import DropPlacement
from cms.tree.hierarchy import collect_descendants
from cms.tree.store import PageId, PageRecord, PageStore

logger = logging.getLogger(__name__)


class MoveKind(str, Enum):
    REORDER = "reorder"
    REPARENT = "reparent"


@dataclass(frozen=True)
class OrderUpdate:
    page_id: PageId
    order_index: int

    def to_dict(self) -> Dict:
        return {"page_id": self.page_id, "order_index": self.order_index}


@dataclass
class MoveResult:
    page_id: PageId
    kind: MoveKind
    old_parent_id: Optional[PageId]
    new_parent_id: Optional[PageId]
    new_order_index: int
    # toutes les pages des groupes touchés, avec leur position finale
    assignments: List[OrderUpdate] = field(default_factory=list)
    is_noop: bool = False


def _clamp(value: int, low: int, high: int) -> int:
    return max(low, min(value, high))


def _assign(group: List[PageRecord]) -> List[OrderUpdate]:
    return [OrderUpdate(page.id, position) for position, page in enumerate(group)]


def _unchanged(store: PageStore, assignments: List[OrderUpdate]) -> bool:
    return all(store.get(u.page_id).order_index == u.order_index for u in assignments)


def reorder_within_parent(store: PageStore, page_id: PageId, target_index: int) -> MoveResult:
    """Déplace une page dans son propre groupe de frères.

    target_index désigne l'emplacement visé dans la liste actuelle (avant
    retrait de la page). Si la page était avant cet emplacement, on retire 1
    pour compenser le décalage dû au retrait, puis on borne dans [0, n-1].
    """
    page = store.get(page_id)
    group = store.siblings(page.parent_id)
    original = next(i for i, p in enumerate(group) if p.id == page_id)
    remaining = [p for p in group if p.id != page_id]

    index = target_index
    if original < index:
        index -= 1
    index = _clamp(index, 0, len(remaining))

    new_group = remaining[:index] + [page] + remaining[index:]
    assignments = _assign(new_group)
    return MoveResult(
        page_id=page_id,
        kind=MoveKind.REORDER,
        old_parent_id=page.parent_id,
        new_parent_id=page.parent_id,
        new_order_index=index,
        assignments=assignments,
        is_noop=_unchanged(store, assignments),
    )


def reparent(store: PageStore, page_id: PageId, new_parent_id: Optional[PageId],
             target_index: Optional[int]) -> MoveResult:
    """Déplace une page vers un autre groupe de frères.

    Le groupe d'origine est recompacté (fermeture du trou), la page est
    insérée dans le groupe cible à l'index borné dans [0, len(cible)].
    """
    page = store.get(page_id)
    origin = [p for p in store.siblings(page.parent_id) if p.id != page_id]
    target = [p for p in store.siblings(new_parent_id) if p.id != page_id]

    index = len(target) if target_index is None else _clamp(target_index, 0, len(target))
    new_target = target[:index] + [page] + target[index:]

    return MoveResult(
        page_id=page_id,
        kind=MoveKind.REPARENT,
        old_parent_id=page.parent_id,
        new_parent_id=new_parent_id,
        new_order_index=index,
        assignments=_assign(origin) + _assign(new_target),
    )


def check_move(store: PageStore, page_id: PageId, new_parent_id: Optional[PageId]) -> None:
    """Préconditions d'un déplacement : à vérifier avant toute mutation."""
    store.get(page_id)
    if new_parent_id is None:
        return
    if new_parent_id == page_id:
        raise InvalidMove(f"Page {page_id} cannot become its own parent")
    if new_parent_id not in store:
        raise InvalidMove(f"Target parent {new_parent_id} does not exist")
    if new_parent_id in collect_descendants(page_id, store):
        raise InvalidMove(f"Page {page_id} cannot move under its descendant {new_parent_id}")


def plan_move(store: PageStore, page_id: PageId, new_parent_id: Optional[PageId],
              target_index: Optional[int] = None) -> MoveResult:
    """Point d'entrée : valide le déplacement puis choisit le moteur.

    target_index=None place la page en dernière position du groupe cible.
    """
    check_move(store, page_id, new_parent_id)
    page = store.get(page_id)

    if new_parent_id == page.parent_id:
        if target_index is None:
            target_index = len(store.siblings(new_parent_id))
        result = reorder_within_parent(store, page_id, target_index)
    else:
        result = reparent(store, page_id, new_parent_id, target_index)

    logger.debug("Planned %s of %s: parent %s -> %s at %s",
                 result.kind.value, page_id, result.old_parent_id,
                 result.new_parent_id, result.new_order_index)
    return result


def plan_position(store: PageStore, page_id: PageId, new_parent_id: Optional[PageId],
                  position: Optional[int] = None) -> MoveResult:
    """Comme plan_move, mais position désigne la position finale de la page."""
    check_move(store, page_id, new_parent_id)
    page = store.get(page_id)
    if new_parent_id == page.parent_id and position is not None:
        group = store.siblings(new_parent_id)
        original = next(i for i, p in enumerate(group) if p.id == page_id)
        # emplacement équivalent dans la liste avant retrait
        if position > original:
            position += 1
    return plan_move(store, page_id, new_parent_id, position)


def plan_drop(store: PageStore, page_id: PageId, placement: DropPlacement) -> MoveResult:
    return plan_move(store, page_id, placement.parent_id, placement.index)
