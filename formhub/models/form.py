from sqlalchemy import Boolean, JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column
from formhub.db.session import Base
from formhub.models.common import UUIDMixin, TimestampMixin

class Form(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "forms"
    title: Mapped[str] = mapped_column(String(255), nullable=False, default="Untitled Form")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)  # identity provider user id
    settings: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
