from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from cms.core.database import get_db
from cms.core.deps import get_current_editor
from cms.models.user import User
from cms.schemas.page import (
    PageCreate, PageUpdate, PageResponse, PageDetail, ReorderRequest,
    MoveRequest, MoveResponse, DescendantsResponse, OrderUpdateItem
)
from cms.schemas.tree import DropZoneOut, TreeNodeOut, TreeResponse
from cms.services import page_service
from cms.tree.hierarchy import build_full_path
from cms.tree.renderer import TreeNode, render_tree, root_zones
from typing import List

router = APIRouter(prefix="/pages", tags=["pages"])


def _zone_out(zone) -> DropZoneOut:
    return DropZoneOut(
        zone_id=zone.zone_id,
        kind=zone.kind.value,
        parent_id=zone.parent_id,
        index=zone.index,
        anchor_id=zone.anchor_id
    )

def _node_out(node: TreeNode) -> TreeNodeOut:
    return TreeNodeOut(
        id=node.page.id,
        title=node.page.title,
        slug=node.page.slug,
        full_path=node.full_path,
        depth=node.depth,
        order_index=node.page.order_index,
        is_active=node.page.is_active,
        show_in_menu=node.page.show_in_menu,
        child_zone=_zone_out(node.child_zone),
        zones=[_zone_out(z) for z in node.zones],
        children=[_node_out(c) for c in node.children]
    )

def _detail(db: Session, page) -> PageDetail:
    store = page_service.load_page_store(db)
    data = PageResponse.model_validate(page).model_dump()
    return PageDetail(**data, content=page.content, full_path=build_full_path(page.id, store))


# Liste plate de toutes les pages (alimente le PageStore de l'éditeur)
@router.get("", response_model=List[PageResponse])
def list_pages(db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    return page_service.list_pages(db)

@router.get("/tree", response_model=TreeResponse)
def get_tree(db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    """Arbre imbriqué avec les zones de dépôt de chaque groupe"""
    store = page_service.load_page_store(db)
    nodes = render_tree(store)
    return TreeResponse(
        zones=[_zone_out(z) for z in root_zones(store)],
        nodes=[_node_out(n) for n in nodes]
    )

@router.post("/reorder", response_model=List[PageResponse])
def reorder_pages(payload: ReorderRequest, db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    """Lot atomique de positions dans un même groupe de frères"""
    return page_service.apply_reorder(db, payload.updates)

# Crée une page (par défaut en fin de groupe)
@router.post("", response_model=PageDetail, status_code=status.HTTP_201_CREATED)
def create_page(page_data: PageCreate, db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    page = page_service.create_page(db, page_data)
    return _detail(db, page)

@router.get("/{page_id}", response_model=PageDetail)
def get_page(page_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    page = page_service.get_page(db, page_id)
    return _detail(db, page)

@router.put("/{page_id}", response_model=PageDetail)
def update_page(page_id: int, page_data: PageUpdate, db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    page = page_service.get_page(db, page_id)
    page = page_service.update_page(db, page, page_data)
    return _detail(db, page)

@router.post("/{page_id}/toggle", response_model=PageResponse)
def toggle_page(page_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    return page_service.toggle_page(db, page_id)

@router.post("/{page_id}/move", response_model=MoveResponse)
def move_page(page_id: int, payload: MoveRequest, db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    """Change le parent et/ou la position ; les deux groupes sont recalculés côté serveur"""
    result = page_service.apply_move(db, page_id, payload.new_parent_id, payload.new_order_index)
    return MoveResponse(
        page_id=result.page_id,
        kind=result.kind.value,
        new_parent_id=result.new_parent_id,
        new_order_index=result.new_order_index,
        updates=[OrderUpdateItem(**u.to_dict()) for u in result.assignments]
    )

@router.get("/{page_id}/descendants", response_model=DescendantsResponse)
def get_descendants(page_id: int, db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    # utilisé par la boîte de dialogue de suppression
    ids = page_service.count_descendants(db, page_id)
    return DescendantsResponse(page_id=page_id, count=len(ids), ids=ids)

@router.delete("/{page_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_page(page_id: int, with_descendants: bool = False, db: Session = Depends(get_db), current_user: User = Depends(get_current_editor)):
    page_service.delete_page(db, page_id, with_descendants)
