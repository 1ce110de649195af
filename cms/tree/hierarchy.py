"""Chemins complets et descendants, calculés à la demande sur le PageStore."""

from typing import Dict, List, Optional, Set

from cms.core.errors import CycleDetected
from cms.tree.store import PageId, PageRecord, PageStore


def ancestors(page_id: PageId, store: PageStore) -> List[PageId]:
    """Ids des ancêtres, du parent direct jusqu'à la racine.

    La remontée mémorise les ids visités : une boucle dans parent_id lève
    CycleDetected au lieu de tourner indéfiniment.
    """
    chain = []
    visited = {page_id}
    current = store.get(page_id)
    while current.parent_id is not None:
        parent_id = current.parent_id
        if parent_id in visited:
            raise CycleDetected(page_id, chain + [parent_id])
        visited.add(parent_id)
        chain.append(parent_id)
        current = store.find(parent_id)
        if current is None:
            # parent orphelin : on s'arrête comme à une racine
            break
    return chain


def build_full_path(page_id: PageId, store: PageStore) -> str:
    """Route complète : '/' + slugs de la racine jusqu'à la page."""
    slugs = [store.get(page_id).slug]
    for ancestor_id in ancestors(page_id, store):
        ancestor = store.find(ancestor_id)
        if ancestor is None:
            break
        slugs.append(ancestor.slug)
    slugs.reverse()
    return "/" + "/".join(slugs)


def resolve_full_path(path: str, store: PageStore, active_only: bool = False) -> Optional[PageRecord]:
    # descend segment par segment depuis les pages racines
    segments = [s for s in path.split("/") if s]
    if not segments:
        return None

    parent_id = None
    page = None
    for segment in segments:
        page = next((p for p in store.siblings(parent_id) if p.slug == segment), None)
        if page is None:
            return None
        if active_only and not page.is_active:
            return None
        parent_id = page.id
    return page


def collect_descendants(page_id: PageId, store: PageStore) -> Set[PageId]:
    """Tous les enfants transitifs d'une page (la page elle-même exclue).

    Parcours avec une pile explicite : pas de limite de profondeur.
    """
    by_parent: Dict[Optional[PageId], List[PageId]] = {}
    for page in store:
        by_parent.setdefault(page.parent_id, []).append(page.id)

    found: Set[PageId] = set()
    stack = [page_id]
    while stack:
        current_id = stack.pop()
        for child_id in by_parent.get(current_id, []):
            if child_id in found or child_id == page_id:
                continue
            found.add(child_id)
            stack.append(child_id)
    return found


def is_descendant(candidate_id: PageId, ancestor_id: PageId, store: PageStore) -> bool:
    return candidate_id in collect_descendants(ancestor_id, store)
