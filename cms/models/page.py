"""Page model"""

from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, JSON
from datetime import datetime
from cms.core.database import Base
from cms.tree.store import PageRecord


class Page(Base):
    __tablename__ = "pages"

    id = Column(Integer, primary_key=True, index=True)

    title = Column(String, nullable=False)
    slug = Column(String, nullable=False, index=True)
    meta_description = Column(String, default="")
    content = Column(JSON, default=list)  # blocs rich-text, opaques ici
    image_url = Column(String, nullable=True)

    # arborescence : parent + position dans le groupe de frères (0..k-1)
    parent_id = Column(Integer, ForeignKey("pages.id"), nullable=True, index=True)
    order_index = Column(Integer, nullable=False, default=0)

    is_active = Column(Boolean, default=True)
    show_in_menu = Column(Boolean, default=True)
    show_in_footer = Column(Boolean, default=False)
    show_toc = Column(Boolean, default=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def to_record(self) -> PageRecord:
        return PageRecord(
            id=self.id,
            title=self.title,
            slug=self.slug,
            parent_id=self.parent_id,
            order_index=self.order_index,
            is_active=bool(self.is_active),
            show_in_menu=bool(self.show_in_menu),
        )
