import uuid
from datetime import datetime

from sqlalchemy import Enum, ForeignKey, Index, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from formcraft.core.database import Base


class Response(Base):
    """One respondent's attempt at a form.

    Created as a draft when the form is opened, flipped to ``submitted`` once
    the answers pass validation and are stored as ResponseItems.
    ``abandoned_at`` is set by the liveness tracker and is never cleared.
    """

    __tablename__ = "responses"
    __table_args__ = (
        Index("ix_responses_form_id", "form_id"),
        Index("ix_responses_form_status", "form_id", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    form_id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), ForeignKey("forms.id"), nullable=False)
    status: Mapped[str] = mapped_column(
        Enum("draft", "submitted", name="response_status"),
        nullable=False,
        default="draft",
        server_default="draft",
    )
    abandoned_at: Mapped[datetime | None] = mapped_column()
    created_at: Mapped[datetime] = mapped_column(server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(server_default=func.now(), onupdate=func.now())

    form: Mapped["Form"] = relationship(back_populates="responses")
    items: Mapped[list["ResponseItem"]] = relationship(
        back_populates="response",
        cascade="all, delete-orphan",
        order_by="ResponseItem.created_at",
    )
    session: Mapped["FormSession"] = relationship(
        back_populates="response", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        abandoned = ", abandoned" if self.abandoned_at else ""
        return f"<Response form={self.form_id} ({self.status}{abandoned})>"
