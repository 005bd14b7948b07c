from sqlalchemy import BigInteger, Boolean, Column, DateTime, ForeignKey, Identity, Index, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from silo_pipeline.db.base import Base


class StageTransition(Base):
    """Append-only log of stage transition attempts, accepted or not."""

    __tablename__ = "stage_transitions"
    __allow_unmapped__ = True
    __table_args__ = (
        Index("ix_stage_transitions_application_id", "application_id", "id"),
        Index("ix_stage_transitions_silo_id", "silo_id"),
    )

    id = Column(BigInteger, Identity(), primary_key=True)
    application_id = Column(
        UUID(as_uuid=True),
        ForeignKey("applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    silo_id = Column(String(64), nullable=False)
    from_stage = Column(String(50), nullable=True)
    to_stage = Column(String(50), nullable=False)
    accepted = Column(Boolean, nullable=False)
    reason = Column(String(100), nullable=False)
    actor_id = Column(String(255), nullable=True)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    application = relationship("Application", back_populates="transitions")
