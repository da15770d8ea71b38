import uuid
from models import Base
from sqlalchemy import UUID, DateTime, ForeignKey, String
from sqlalchemy.orm import mapped_column, Mapped, relationship


class Token(Base):
    """Bearer session of an admin user, deleted on logout or once expired."""

    __tablename__ = "token"

    id: Mapped[uuid.UUID] = mapped_column(
        "id", UUID(as_uuid=True), primary_key=True, index=True, default=uuid.uuid4
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        "user_id", ForeignKey("user.id", ondelete="CASCADE"), index=True, nullable=False
    )
    token: Mapped[str] = mapped_column("token", String, nullable=False, unique=True)
    expired_at = mapped_column("expired_at", DateTime(timezone=True), nullable=False)
    created_at = mapped_column("created_at", DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="tokens", foreign_keys=[user_id])
