import uuid

from sqlalchemy import CheckConstraint, Column, DateTime, Index, Integer, String, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from silo_pipeline.db.base import Base


STAGE_VALUES = (
    "received",
    "requires_docs",
    "in_review",
    "startup_pipeline",
    "ready_for_signing",
    "off_to_lender",
    "offer",
    "accepted",
    "declined",
)


class Application(Base):
    __tablename__ = "applications"
    __allow_unmapped__ = True
    __table_args__ = (
        CheckConstraint(
            "current_stage IN (" + ", ".join(f"'{stage}'" for stage in STAGE_VALUES) + ")",
            name="ck_applications_current_stage",
        ),
        CheckConstraint("version >= 1", name="ck_applications_version_positive"),
        Index("ix_applications_silo_stage", "silo_id", "current_stage"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    silo_id = Column(String(64), nullable=False, index=True)
    product_category = Column(String(50), nullable=False)
    current_stage = Column(String(50), nullable=False)
    name = Column(String(255), nullable=True)
    version = Column(Integer, nullable=False, default=1)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )

    transitions = relationship(
        "StageTransition",
        back_populates="application",
        order_by="StageTransition.id",
        passive_deletes=True,
    )
