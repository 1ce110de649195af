"""Page service : opérations en base sur l'arborescence des pages"""

import logging
from contextlib import contextmanager
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from cms.core.errors import InvalidMove, InvariantViolation, PageNotFound, PageTreeError, SlugConflict
from cms.models.page import Page
from cms.schemas.page import OrderUpdateItem, PageCreate, PageUpdate
from cms.services.slug_service import slugify
from cms.tree.engine import MoveResult, plan_position
from cms.tree.hierarchy import collect_descendants, resolve_full_path
from cms.tree.store import PageRecord, PageStore

logger = logging.getLogger(__name__)


@contextmanager
def transactional(db: Session):
    """Commit à la sortie, rollback et relance si une exception survient."""
    try:
        yield
        db.commit()
    except Exception:
        db.rollback()
        raise


def list_pages(db: Session) -> List[Page]:
    return db.query(Page).order_by(Page.parent_id, Page.order_index).all()


def load_page_store(db: Session) -> PageStore:
    return PageStore(page.to_record() for page in list_pages(db))


def get_page(db: Session, page_id: int) -> Page:
    page = db.query(Page).filter(Page.id == page_id).first()
    if not page:
        raise PageNotFound(page_id)
    return page


def _check_slug(db: Session, slug: str, parent_id: Optional[int], exclude_id: Optional[int] = None):
    # deux frères avec le même slug rendraient la route ambiguë
    if not slug:
        raise PageTreeError("Slug cannot be empty")
    query = db.query(Page).filter(Page.slug == slug)
    query = query.filter(Page.parent_id.is_(None)) if parent_id is None else query.filter(Page.parent_id == parent_id)
    if exclude_id is not None:
        query = query.filter(Page.id != exclude_id)
    if query.first():
        raise SlugConflict(f"Slug '{slug}' already used under parent {parent_id}")


def _sibling_rows(db: Session, parent_id: Optional[int]) -> List[Page]:
    query = db.query(Page)
    query = query.filter(Page.parent_id.is_(None)) if parent_id is None else query.filter(Page.parent_id == parent_id)
    return query.order_by(Page.order_index).all()


def create_page(db: Session, data: PageCreate) -> Page:
    if data.parent_id is not None and not db.query(Page).filter(Page.id == data.parent_id).first():
        raise InvalidMove(f"Parent page {data.parent_id} does not exist")

    slug = data.slug or slugify(data.title)
    _check_slug(db, slug, data.parent_id)

    siblings = _sibling_rows(db, data.parent_id)
    index = len(siblings) if data.order_index is None else min(data.order_index, len(siblings))

    page = Page(
        title=data.title,
        slug=slug,
        meta_description=data.meta_description,
        content=data.content,
        image_url=data.image_url,
        parent_id=data.parent_id,
        order_index=index,
        is_active=data.is_active,
        show_in_menu=data.show_in_menu,
        show_in_footer=data.show_in_footer,
        show_toc=data.show_toc,
    )
    with transactional(db):
        # décale les frères suivants pour garder 0..k-1
        for position, sibling in enumerate(siblings[:index] + [page] + siblings[index:]):
            sibling.order_index = position
        db.add(page)
    db.refresh(page)
    logger.info("Page %s created under %s at %s", page.id, page.parent_id, page.order_index)
    return page


def update_page(db: Session, page: Page, data: PageUpdate) -> Page:
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "slug" in changes and changes["slug"] != page.slug:
        _check_slug(db, changes["slug"], page.parent_id, exclude_id=page.id)

    with transactional(db):
        for field, value in changes.items():
            setattr(page, field, value)
    db.refresh(page)
    logger.info("Page %s updated: %s", page.id, sorted(changes))
    return page


def toggle_page(db: Session, page_id: int) -> Page:
    page = get_page(db, page_id)
    with transactional(db):
        page.is_active = not page.is_active
    db.refresh(page)
    logger.info("Page %s is_active=%s", page.id, page.is_active)
    return page


def count_descendants(db: Session, page_id: int) -> List[int]:
    get_page(db, page_id)
    return sorted(collect_descendants(page_id, load_page_store(db)))


def delete_page(db: Session, page_id: int, with_descendants: bool = False) -> List[int]:
    """Supprime une page, seule ou avec toute sa descendance.

    Seule : ses enfants directs passent à la racine, en fin de groupe.
    Dans les deux cas les groupes touchés sont recompactés.
    Retourne les ids supprimés.
    """
    page = get_page(db, page_id)
    store = load_page_store(db)

    removed = {page_id}
    promoted: List[PageRecord] = []
    if with_descendants:
        removed |= collect_descendants(page_id, store)
    else:
        promoted = store.children(page_id)

    # un enfant promu ne doit pas doubler le slug d'une page racine
    root_slugs = {p.slug for p in store.siblings(None) if p.id != page_id}
    clashes = sorted(p.slug for p in promoted if p.slug in root_slugs)
    if clashes:
        raise SlugConflict(f"Promoting children of {page_id} to root would duplicate slugs {clashes}")

    origin = [p for p in store.siblings(page.parent_id) if p.id not in removed]
    if not promoted:
        groups = [origin]
    elif page.parent_id is None:
        groups = [origin + promoted]
    else:
        groups = [origin, store.siblings(None) + promoted]

    rows = {row.id: row for row in db.query(Page).all()}
    with transactional(db):
        for record in promoted:
            rows[record.id].parent_id = None
        for group in groups:
            for position, record in enumerate(group):
                rows[record.id].order_index = position
        db.flush()
        if with_descendants:
            db.query(Page).filter(Page.id.in_(removed)).delete(synchronize_session=False)
        else:
            db.delete(rows[page_id])

    logger.info("Deleted pages %s (with_descendants=%s, promoted=%s)",
                sorted(removed), with_descendants, [p.id for p in promoted])
    return sorted(removed)


def apply_reorder(db: Session, updates: List[OrderUpdateItem]) -> List[Page]:
    """Applique un lot de positions en une transaction.

    Rien n'est écrit si un groupe touché n'est plus dense après le lot.
    """
    ids = [u.page_id for u in updates]
    if len(set(ids)) != len(ids):
        raise PageTreeError("Duplicate page_id in reorder batch")

    rows = {row.id: row for row in db.query(Page).filter(Page.id.in_(ids)).all()}
    missing = [page_id for page_id in ids if page_id not in rows]
    if missing:
        raise PageNotFound(missing[0])

    with transactional(db):
        for update in updates:
            rows[update.page_id].order_index = update.order_index
        db.flush()

        store = load_page_store(db)
        for parent_id in {row.parent_id for row in rows.values()}:
            orders = [p.order_index for p in store.siblings(parent_id)]
            if orders != list(range(len(orders))):
                raise InvariantViolation(
                    f"Reorder batch leaves group {parent_id} with positions {orders}"
                )

    logger.info("Reorder batch applied: %s", [(u.page_id, u.order_index) for u in updates])
    return [rows[page_id] for page_id in ids]


def apply_move(db: Session, page_id: int, new_parent_id: Optional[int],
               new_order_index: Optional[int]) -> MoveResult:
    """Change le parent et la position d'une page ; recalcule les deux groupes."""
    store = load_page_store(db)
    result = plan_position(store, page_id, new_parent_id, new_order_index)
    if result.is_noop:
        return result

    if result.new_parent_id != result.old_parent_id:
        _check_slug(db, store.get(page_id).slug, result.new_parent_id, exclude_id=page_id)

    touched = [u.page_id for u in result.assignments]
    rows = {row.id: row for row in db.query(Page).filter(Page.id.in_(touched)).all()}
    with transactional(db):
        rows[page_id].parent_id = result.new_parent_id
        for update in result.assignments:
            rows[update.page_id].order_index = update.order_index

    logger.info("Page %s moved: parent %s -> %s at %s",
                page_id, result.old_parent_id, result.new_parent_id, result.new_order_index)
    return result


def menu_pages(db: Session) -> List[Page]:
    return db.query(Page).filter(
        Page.parent_id.is_(None),
        Page.is_active == True,
        Page.show_in_menu == True
    ).order_by(Page.order_index).all()


def find_by_full_path(db: Session, full_path: str) -> Tuple[Optional[Page], PageStore]:
    """Page active dont la route complète correspond exactement."""
    store = load_page_store(db)
    record = resolve_full_path(full_path, store, active_only=True)
    if record is None:
        return None, store
    return get_page(db, record.id), store


def active_children(db: Session, page_id: int) -> List[Page]:
    return db.query(Page).filter(
        Page.parent_id == page_id,
        Page.is_active == True
    ).order_by(Page.order_index).all()
