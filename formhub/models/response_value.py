import uuid
from sqlalchemy import ForeignKey, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column
from formhub.db.session import Base
from formhub.models.common import UUIDMixin, TimestampMixin

class ResponseValue(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "response_values"
    __table_args__ = (
        UniqueConstraint("response_id", "field_id", name="uq_response_values_response_field"),
    )

    response_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("form_responses.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # Not a foreign key: answers outlive the field definition they were given for.
    field_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), nullable=False, index=True)
    value: Mapped[str | None] = mapped_column(Text, nullable=True)
