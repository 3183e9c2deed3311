import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, Float, ForeignKey, Index, String, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formcraft.core.database import Base


class ResponseItem(Base):
    """A single answer inside a response, keyed by the schema field key.

    ``value_json`` keeps the answer exactly as the engine produced it:
    string, number, boolean or a list of option values.
    """

    __tablename__ = "response_items"
    __table_args__ = (
        Index("ix_response_items_response_id", "response_id"),
        Index("ix_response_items_response_field", "response_id", "field_key"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    response_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("responses.id"), nullable=False)
    field_key: Mapped[str] = mapped_column(String(255), nullable=False)
    value_json: Mapped[Any] = mapped_column(JSONB)
    valid: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default="true")
    confidence: Mapped[float | None] = mapped_column(Float)
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())

    response: Mapped["Response"] = relationship(back_populates="items")

    def __repr__(self) -> str:
        return f"<ResponseItem {self.field_key}={self.value_json!r}>"
