import uuid
from sqlalchemy import ForeignKey, String, Text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from formhub.db.session import Base
from formhub.models.common import SortOrderMixin, TimestampMixin, UUIDMixin

class FieldOption(Base, UUIDMixin, TimestampMixin, SortOrderMixin):
    __tablename__ = "field_options"
    field_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("form_fields.id", ondelete="CASCADE"), nullable=False, index=True
    )
    value: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
