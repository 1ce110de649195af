from pydantic import BaseModel
from typing import Optional, List

# Vue arborescente renvoyée à l'écran d'administration

class DropZoneOut(BaseModel):
    zone_id: str
    kind: str
    parent_id: Optional[int]
    index: int
    anchor_id: Optional[int]

class TreeNodeOut(BaseModel):
    id: int
    title: str
    slug: str
    full_path: str
    depth: int
    order_index: int
    is_active: bool
    show_in_menu: bool
    child_zone: DropZoneOut
    zones: List[DropZoneOut] = []
    children: List["TreeNodeOut"] = []

class TreeResponse(BaseModel):
    zones: List[DropZoneOut]
    nodes: List[TreeNodeOut]

TreeNodeOut.model_rebuild()
