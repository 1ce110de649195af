"""Vue imbriquée du PageStore avec les zones de dépôt intercalées."""

import logging
from dataclasses import dataclass, field
from typing import Iterator, List, Optional

from cms.tree.dropzone import DropZone, ZoneKind
from cms.tree.hierarchy import build_full_path
from cms.tree.store import PageId, PageRecord, PageStore

logger = logging.getLogger(__name__)


@dataclass
class TreeNode:
    page: PageRecord
    depth: int
    full_path: str
    child_zone: DropZone
    children: List["TreeNode"] = field(default_factory=list)
    # zones du groupe des enfants : BETWEEN, ou EMPTY_CHILDREN si aucun enfant
    zones: List[DropZone] = field(default_factory=list)


def group_zones(parent_id: Optional[PageId], group: List[PageRecord]) -> List[DropZone]:
    """Une zone avant le premier élément puis une après chaque élément."""
    zones = [DropZone(ZoneKind.BETWEEN, parent_id, 0, None)]
    for position, page in enumerate(group):
        zones.append(DropZone(ZoneKind.BETWEEN, parent_id, position + 1, page.id))
    return zones


def _render_group(store: PageStore, parent_id: Optional[PageId], depth: int,
                  parent_path: str) -> List[TreeNode]:
    # pile explicite : la profondeur de l'arbre n'est pas bornée
    nodes: List[TreeNode] = []
    rendered: List[TreeNode] = []
    stack = [(parent_id, depth, parent_path, nodes)]
    while stack:
        group_parent, level, path, into = stack.pop()
        for page in store.siblings(group_parent):
            node = TreeNode(
                page=page,
                depth=level,
                full_path=f"{path}/{page.slug}",
                child_zone=DropZone(ZoneKind.CHILD, page.parent_id, page.order_index, page.id),
            )
            into.append(node)
            rendered.append(node)
            stack.append((page.id, level + 1, node.full_path, node.children))

    for node in rendered:
        if node.children:
            node.zones = group_zones(node.page.id, [c.page for c in node.children])
        else:
            node.zones = [DropZone(ZoneKind.EMPTY_CHILDREN, node.page.id, 0, node.page.id)]
    return nodes


def render_tree(store: PageStore) -> List[TreeNode]:
    nodes = _render_group(store, None, 0, "")

    # une page hors d'atteinte depuis les racines est soit orpheline, soit dans un cycle
    rendered = {node.page.id for node in iter_tree(nodes)}
    for page in store:
        if page.id not in rendered:
            build_full_path(page.id, store)  # lève CycleDetected si boucle
            logger.warning("Page %s has a missing parent %s, not rendered", page.id, page.parent_id)
    return nodes


def root_zones(store: PageStore) -> List[DropZone]:
    return group_zones(None, store.siblings(None))


def iter_tree(nodes: List[TreeNode]) -> Iterator[TreeNode]:
    """Parcours en profondeur, parent avant ses enfants."""
    stack = list(reversed(nodes))
    while stack:
        node = stack.pop()
        yield node
        stack.extend(reversed(node.children))


def flatten_zones(nodes: List[TreeNode], store: PageStore = None) -> List[DropZone]:
    """Toutes les zones de l'arbre rendu, racine comprise si store est fourni."""
    zones = root_zones(store) if store is not None else []
    for node in iter_tree(nodes):
        zones.append(node.child_zone)
        zones.extend(node.zones)
    return zones
