"""
EHS Enforcement Engine - SQLAlchemy ORM Models
PostgreSQL database models for persistent storage
"""
from datetime import datetime
from enum import Enum
from sqlalchemy import Column, String, Integer, DateTime, Text, JSON, ForeignKey, Enum as SQLEnum, Boolean, Date, Numeric
from sqlalchemy.orm import relationship
from ..database import Base


# =============================================================================
# ENUMS
# =============================================================================

class MetricsPeriod(str, Enum):
    """Time window summarized by a cached metrics snapshot."""
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"


class CalculatedBy(str, Enum):
    """Provenance of a metrics snapshot."""
    ADMIN = "admin"
    AUTOMATION = "automation"


class UserDB(Base):
    """Application user. Only the role is consulted by this backend."""
    __tablename__ = "users"

    id = Column(String(36), primary_key=True)  # UUID
    email = Column(String(255), unique=True, nullable=False, index=True)
    username = Column(String(100), unique=True, nullable=False, index=True)
    role = Column(String(20), nullable=False, default="user")  # "user" or "admin"
    created_at = Column(DateTime, default=datetime.utcnow)


# =============================================================================
# ENFORCEMENT RECORDS (populated by the import pipeline)
# =============================================================================

class AgencyDB(Base):
    """Regulator issuing cases and notices (HSE, EA, ...)."""
    __tablename__ = "agencies"

    id = Column(String(36), primary_key=True)  # UUID
    code = Column(String(20), unique=True, nullable=False, index=True)  # hse, ea, sepa
    name = Column(String(255), nullable=False)
    base_url = Column(String(500), nullable=True)
    enabled = Column(Boolean, default=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    cases = relationship("CaseDB", back_populates="agency")
    notices = relationship("NoticeDB", back_populates="agency")


class OffenderDB(Base):
    """Organisation or individual subject to enforcement action."""
    __tablename__ = "offenders"

    id = Column(String(36), primary_key=True)  # UUID
    name = Column(String(255), nullable=False, index=True)
    postcode = Column(String(20), nullable=True)
    local_authority = Column(String(255), nullable=True)
    main_activity = Column(String(255), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    cases = relationship("CaseDB", back_populates="offender")
    notices = relationship("NoticeDB", back_populates="offender")


class CaseDB(Base):
    """
    Court case resulting in a fine.
    Cases are the only enforcement records that carry money.
    """
    __tablename__ = "cases"

    id = Column(String(36), primary_key=True)  # UUID
    regulator_id = Column(String(100), unique=True, nullable=False, index=True)
    agency_id = Column(String(36), ForeignKey("agencies.id", ondelete="SET NULL"), nullable=True, index=True)
    offender_id = Column(String(36), ForeignKey("offenders.id", ondelete="SET NULL"), nullable=True, index=True)

    action_date = Column(Date, nullable=True, index=True)  # Required for feed inclusion
    action_type = Column(String(100), nullable=True)  # "Court Case", "Caution", ...
    fine_amount = Column(Numeric(14, 2), nullable=True)
    costs_amount = Column(Numeric(14, 2), nullable=True)
    breaches = Column(Text, nullable=True)
    url = Column(String(500), nullable=True)

    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    agency = relationship("AgencyDB", back_populates="cases")
    offender = relationship("OffenderDB", back_populates="cases")


class NoticeDB(Base):
    """
    Enforcement notice. Never fined; subject to a compliance deadline.
    Compliance status is derived at read time and never stored here.
    """
    __tablename__ = "notices"

    id = Column(String(36), primary_key=True)  # UUID
    regulator_id = Column(String(100), unique=True, nullable=False, index=True)
    agency_id = Column(String(36), ForeignKey("agencies.id", ondelete="SET NULL"), nullable=True, index=True)
    offender_id = Column(String(36), ForeignKey("offenders.id", ondelete="SET NULL"), nullable=True, index=True)

    action_type = Column(String(100), nullable=True)  # "Improvement Notice", "Prohibition Notice", ...
    action_date = Column(Date, nullable=True, index=True)  # Falls back to notice_date in the feed
    notice_date = Column(Date, nullable=True)
    operative_date = Column(Date, nullable=True)
    compliance_date = Column(Date, nullable=True)
    notice_body = Column(Text, nullable=True)
    breaches = Column(Text, nullable=True)
    url = Column(String(500), nullable=True)

    last_synced_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    agency = relationship("AgencyDB", back_populates="notices")
    offender = relationship("OffenderDB", back_populates="notices")


# =============================================================================
# CACHED DASHBOARD METRICS
# =============================================================================

class MetricsSnapshotDB(Base):
    """
    Materialized dashboard metrics - current state only.

    Exactly one row per period. Written ONLY by MetricsStore.replace(),
    which swaps the row for a period inside a single transaction.
    No history is retained.
    """
    __tablename__ = "metrics_snapshots"

    id = Column(String(36), primary_key=True)  # UUID
    period = Column(SQLEnum(MetricsPeriod), unique=True, nullable=False, index=True)
    period_label = Column(String(50), nullable=False)  # "Last 30 Days"
    days_ago = Column(Integer, nullable=False)
    cutoff_date = Column(Date, nullable=False)

    # Counts
    recent_cases_count = Column(Integer, nullable=False, default=0)
    recent_notices_count = Column(Integer, nullable=False, default=0)
    total_cases_count = Column(Integer, nullable=False, default=0)
    total_notices_count = Column(Integer, nullable=False, default=0)
    active_agencies_count = Column(Integer, nullable=False, default=0)

    # Money
    recent_fines_amount = Column(Numeric(16, 2), nullable=False, default=0)
    recent_costs_amount = Column(Numeric(16, 2), nullable=False, default=0)

    # Breakdown keyed by agency code, plus top-N feed items for instant display
    agency_stats = Column(JSON, nullable=False, default=dict)
    recent_activity = Column(JSON, nullable=False, default=list)

    # Metadata
    calculated_by = Column(SQLEnum(CalculatedBy), nullable=False)
    computed_at = Column(DateTime, nullable=False)
