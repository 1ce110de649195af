"""Page store : liste plate des pages, source de vérité de l'éditeur.

L'arbre n'est jamais stocké, il est recalculé en filtrant sur parent_id.
"""

import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Hashable, Iterable, Iterator, List, Optional, Tuple

from cms.core.errors import InvariantViolation, PageNotFound

logger = logging.getLogger(__name__)

PageId = Hashable


@dataclass
class PageRecord:
    id: PageId
    title: str
    slug: str
    parent_id: Optional[PageId] = None
    order_index: int = 0
    is_active: bool = True
    show_in_menu: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageRecord":
        return cls(
            id=data["id"],
            title=data.get("title", ""),
            slug=data.get("slug", ""),
            parent_id=data.get("parent_id"),
            order_index=data.get("order_index", 0),
            is_active=data.get("is_active", True),
            show_in_menu=data.get("show_in_menu", True),
        )


@dataclass(frozen=True)
class StoreSnapshot:
    """Copie par valeur de toutes les pages, prise avant une mutation optimiste."""
    records: Tuple[PageRecord, ...]

    def structure(self) -> Dict[PageId, Tuple[Optional[PageId], int]]:
        return {r.id: (r.parent_id, r.order_index) for r in self.records}


def _copy_all(records: Iterable[PageRecord]) -> List[PageRecord]:
    return [replace(r) for r in records]


class PageStore:
    def __init__(self, records: Iterable[PageRecord] = ()):
        self._pages: Dict[PageId, PageRecord] = {}
        self.replace_all(records)

    def replace_all(self, records: Iterable[PageRecord]) -> None:
        # conserve l'ordre d'arrivée (celui de la requête de listing)
        self._pages = {r.id: r for r in records}

    def __len__(self) -> int:
        return len(self._pages)

    def __contains__(self, page_id) -> bool:
        return page_id in self._pages

    def __iter__(self) -> Iterator[PageRecord]:
        return iter(list(self._pages.values()))

    def pages(self) -> List[PageRecord]:
        return list(self._pages.values())

    def get(self, page_id: PageId) -> PageRecord:
        try:
            return self._pages[page_id]
        except KeyError:
            raise PageNotFound(page_id) from None

    def find(self, page_id: PageId) -> Optional[PageRecord]:
        return self._pages.get(page_id)

    def siblings(self, parent_id: Optional[PageId]) -> List[PageRecord]:
        """Pages partageant ce parent_id, triées par order_index."""
        group = [p for p in self._pages.values() if p.parent_id == parent_id]
        return sorted(group, key=lambda p: p.order_index)

    def children(self, page_id: PageId) -> List[PageRecord]:
        return self.siblings(page_id)

    def parent_ids(self) -> List[Optional[PageId]]:
        seen = []
        for page in self._pages.values():
            if page.parent_id not in seen:
                seen.append(page.parent_id)
        return seen

    # ---- snapshot / restore ----

    def snapshot(self) -> StoreSnapshot:
        return StoreSnapshot(records=tuple(_copy_all(self._pages.values())))

    def restore(self, snapshot: StoreSnapshot) -> None:
        self.replace_all(_copy_all(snapshot.records))

    def structure(self) -> Dict[PageId, Tuple[Optional[PageId], int]]:
        return {p.id: (p.parent_id, p.order_index) for p in self._pages.values()}

    # ---- mutations ----

    def apply(self, result) -> None:
        """Écrit le résultat d'un MoveResult : nouveau parent puis positions."""
        moved = self.get(result.page_id)
        moved.parent_id = result.new_parent_id
        for update in result.assignments:
            self.get(update.page_id).order_index = update.order_index

    def check_invariants(self) -> None:
        """Chaque groupe de frères doit avoir des order_index 0..k-1 sans trou ni doublon."""
        for parent_id in self.parent_ids():
            orders = sorted(p.order_index for p in self._pages.values() if p.parent_id == parent_id)
            expected = list(range(len(orders)))
            if orders != expected:
                raise InvariantViolation(
                    f"Sibling group {parent_id!r} is not dense from 0: {orders}"
                )
