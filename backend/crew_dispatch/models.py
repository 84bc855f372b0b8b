"""SQLAlchemy models for crews, assignment records and the status sync outbox."""
from sqlalchemy import (
    Boolean, Column, String, Integer, DateTime, Text, JSON,
    ForeignKey, CheckConstraint, Index, Table, UniqueConstraint
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")

ASSIGNMENT_STATUSES = ('ASIGNADO', 'EN_PROCESO', 'COMPLETADO')


crew_complaint_types = Table(
    "crew_complaint_types",
    Base.metadata,
    Column("crew_id", Integer, ForeignKey("crews.id", ondelete="CASCADE"), primary_key=True),
    Column("complaint_type_id", Integer, ForeignKey("complaint_types.id", ondelete="CASCADE"), primary_key=True),
)


class ComplaintType(Base):
    """Complaint category a crew can handle (tipo de reclamo)."""
    __tablename__ = "complaint_types"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), unique=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    crews = relationship("Crew", secondary=crew_complaint_types, back_populates="complaint_types")


class Crew(Base):
    """Field crew (cuadrilla) with a simultaneous-job limit."""
    __tablename__ = "crews"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    phone = Column(String(50), nullable=True)
    simultaneous_limit = Column(Integer, nullable=False, default=1)
    # Derived: open assignment count < simultaneous_limit after the last write.
    is_available = Column(Boolean, nullable=False, default=True)
    last_assigned_at = Column(DateTime(timezone=True), nullable=True)
    assigned_complaint_ids = Column(JSONType, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        CheckConstraint(simultaneous_limit >= 1, name='chk_crew_limit_positive'),
    )

    # Relationships
    complaint_types = relationship("ComplaintType", secondary=crew_complaint_types, back_populates="crews")
    assignment_records = relationship("AssignmentRecord", back_populates="crew")
    messages = relationship("CrewMessage", back_populates="crew", cascade="all, delete-orphan")


class AssignmentRecord(Base):
    """One complaint assigned to one crew, with a snapshot of the complaint."""
    __tablename__ = "assignment_records"

    id = Column(Integer, primary_key=True, autoincrement=True)
    complaint_id = Column(Integer, nullable=False, index=True)
    crew_id = Column(Integer, ForeignKey("crews.id"), nullable=False, index=True)
    status = Column(String(20), nullable=False, default='ASIGNADO', index=True)

    # Snapshot taken at assignment time
    complaint_type = Column(String(255), nullable=True)
    complaint_date = Column(DateTime(timezone=True), nullable=True)
    priority = Column(String(50), nullable=True)
    detail = Column(Text, nullable=True)
    address = Column(String(500), nullable=True)
    neighborhood = Column(String(255), nullable=True)

    registered_at = Column(DateTime(timezone=True), nullable=False)
    assigned_at = Column(DateTime(timezone=True), nullable=False)
    in_process_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            status.in_(ASSIGNMENT_STATUSES),
            name='chk_assignment_status'
        ),
        Index('idx_assignment_records_crew_status', 'crew_id', 'status'),
    )

    # Relationships
    crew = relationship("Crew", back_populates="assignment_records")
    sync_entries = relationship("StatusSyncOutbox", back_populates="assignment_record")


class CrewMessage(Base):
    """Message in a crew's channel; system notes are append-only."""
    __tablename__ = "crew_messages"

    id = Column(Integer, primary_key=True, autoincrement=True)
    crew_id = Column(Integer, ForeignKey("crews.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    sender = Column(String(100), nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)

    # Relationships
    crew = relationship("Crew", back_populates="messages")


class StatusSyncOutbox(Base):
    """
    Pending status update for the Reclamos API, written in the same
    transaction as the local transition. Retried by the Celery worker with
    SELECT FOR UPDATE SKIP LOCKED.
    """
    __tablename__ = "status_sync_outbox"

    id = Column(Integer, primary_key=True, autoincrement=True)
    assignment_record_id = Column(Integer, ForeignKey("assignment_records.id"), nullable=False, index=True)
    complaint_id = Column(Integer, nullable=False, index=True)
    target_status = Column(String(20), nullable=False)
    crew_id = Column(Integer, nullable=True)  # Sent with ASIGNADO, or carried by the row that superseded it

    state = Column(String(20), nullable=False, default='pending', index=True)  # pending/sent/failed/superseded
    attempts = Column(Integer, nullable=False, default=0)
    next_retry_at = Column(DateTime(timezone=True), nullable=True, index=True)
    last_error = Column(Text, nullable=True)

    # Format: record_id:status
    idempotency_key = Column(String(255), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True)
    sent_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            state.in_(['pending', 'sent', 'failed', 'superseded']),
            name='chk_status_sync_state'
        ),
        UniqueConstraint('idempotency_key', name='uq_status_sync_idempotency_key'),
        Index('idx_status_sync_pending_retry', 'state', 'next_retry_at',
              postgresql_where=(state == 'pending')),
    )

    # Relationships
    assignment_record = relationship("AssignmentRecord", back_populates="sync_entries")
