from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from cms.core.database import get_db
from cms.schemas.page import MenuItem, PublicPage
from cms.services import page_service
from cms.tree.hierarchy import build_full_path
from typing import List

# Routes publiques du site (pas de token)
router = APIRouter(prefix="/site", tags=["site"])

@router.get("/menu", response_model=List[MenuItem])
def get_menu(db: Session = Depends(get_db)):
    # pages racines actives affichées dans le menu
    return [
        MenuItem(id=p.id, title=p.title, slug=p.slug, full_path=f"/{p.slug}")
        for p in page_service.menu_pages(db)
    ]

@router.get("/pages/{full_path:path}", response_model=PublicPage)
def get_page_by_path(full_path: str, db: Session = Depends(get_db)):
    """Page active dont la route complète est exactement full_path"""
    page, store = page_service.find_by_full_path(db, full_path)
    if not page:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Page not found")

    page_path = build_full_path(page.id, store)
    children = [
        MenuItem(id=c.id, title=c.title, slug=c.slug, full_path=f"{page_path}/{c.slug}")
        for c in page_service.active_children(db, page.id)
    ]
    return PublicPage(
        id=page.id,
        title=page.title,
        slug=page.slug,
        full_path=page_path,
        meta_description=page.meta_description,
        content=page.content,
        image_url=page.image_url,
        show_toc=bool(page.show_toc),
        children=children
    )
