import uuid
from datetime import datetime

from sqlalchemy import Boolean, Index, String, Text, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formcraft.core.database import Base


class Form(Base):
    """A saved form definition.

    ``schema_json`` holds the full FormSchema as produced by the generator:
        {
            "title": "...",
            "description": "...",
            "fields": [{"key": "email", "type": "email", "label": "E-mail", ...}],
            "settings": {"allowAnonymous": true, "showProgress": true, "submitText": "Enviar"}
        }
    """

    __tablename__ = "forms"
    __table_args__ = (
        Index("ix_forms_owner_id", "owner_id"),
        Index("ix_forms_public_created", "is_public", "created_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(UUID(as_uuid=True))
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    schema_json: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    responses: Mapped[list["Response"]] = relationship(back_populates="form", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        visibility = "public" if self.is_public else "private"
        return f"<Form {self.title} ({visibility})>"
