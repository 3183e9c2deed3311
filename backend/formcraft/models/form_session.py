import uuid
from datetime import datetime

from sqlalchemy import ForeignKey, func
from sqlalchemy.dialects.postgresql import JSONB, UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formcraft.core.database import Base


class FormSession(Base):
    """Liveness record for an in-progress response (one per response)."""

    __tablename__ = "sessions"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    response_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("responses.id"), nullable=False, unique=True
    )
    turns_json: Mapped[list] = mapped_column(JSONB, nullable=False, default=list)
    last_active_at: Mapped[datetime] = mapped_column(server_default=func.now())

    response: Mapped["Response"] = relationship(back_populates="session")

    def __repr__(self) -> str:
        return f"<FormSession response={self.response_id} last_active={self.last_active_at}>"
