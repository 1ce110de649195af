from pydantic import BaseModel, ConfigDict, Field
from datetime import datetime
from typing import Optional, List, Any

# Schemas pour les pages

class PageCreate(BaseModel):
    title: str
    slug: Optional[str] = None  # généré depuis le titre si absent
    meta_description: str = ""
    content: List[Any] = []
    image_url: Optional[str] = None
    parent_id: Optional[int] = None
    order_index: Optional[int] = Field(default=None, ge=0)  # None = fin du groupe
    is_active: bool = True
    show_in_menu: bool = True
    show_in_footer: bool = False
    show_toc: bool = False

class PageUpdate(BaseModel):
    # la position se change uniquement via /reorder et /move
    title: Optional[str] = None
    slug: Optional[str] = None
    meta_description: Optional[str] = None
    content: Optional[List[Any]] = None
    image_url: Optional[str] = None
    is_active: Optional[bool] = None
    show_in_menu: Optional[bool] = None
    show_in_footer: Optional[bool] = None
    show_toc: Optional[bool] = None

class PageResponse(BaseModel):
    id: int
    title: str
    slug: str
    meta_description: Optional[str]
    parent_id: Optional[int]
    order_index: int
    is_active: bool
    show_in_menu: bool
    show_in_footer: bool
    show_toc: bool
    image_url: Optional[str]
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)

class PageDetail(PageResponse):
    content: Optional[List[Any]] = None
    full_path: str

class PublicPage(BaseModel):
    id: int
    title: str
    slug: str
    full_path: str
    meta_description: Optional[str]
    content: Optional[List[Any]] = None
    image_url: Optional[str] = None
    show_toc: bool
    children: List["MenuItem"] = []

class MenuItem(BaseModel):
    id: int
    title: str
    slug: str
    full_path: str

# Réordonnancement

class OrderUpdateItem(BaseModel):
    page_id: int
    order_index: int = Field(ge=0)

class ReorderRequest(BaseModel):
    updates: List[OrderUpdateItem] = Field(min_length=1)

class MoveRequest(BaseModel):
    new_parent_id: Optional[int] = None
    new_order_index: Optional[int] = Field(default=None, ge=0)

class MoveResponse(BaseModel):
    page_id: int
    kind: str
    new_parent_id: Optional[int]
    new_order_index: int
    updates: List[OrderUpdateItem]

class DescendantsResponse(BaseModel):
    page_id: int
    count: int
    ids: List[int]

PublicPage.model_rebuild()
