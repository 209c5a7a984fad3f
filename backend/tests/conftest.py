"""
Shared fixtures: an in-memory SQLite database with the full schema,
plus small factories for agencies, offenders, cases and notices.
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.database import Base
from app.models.db_models import AgencyDB, OffenderDB, CaseDB, NoticeDB


TODAY = date(2026, 10, 17)
NOW = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fixed_clock():
    return lambda: NOW


def make_agency(db, code="hse", name="Health and Safety Executive", enabled=True):
    agency = AgencyDB(id=str(uuid4()), code=code, name=name, enabled=enabled)
    db.add(agency)
    db.flush()
    return agency


def make_offender(db, name="Test Company Ltd"):
    offender = OffenderDB(id=str(uuid4()), name=name)
    db.add(offender)
    db.flush()
    return offender


def make_case(db, agency=None, offender=None, action_date=TODAY, fine_amount="25000.00", **kwargs):
    case = CaseDB(
        id=kwargs.pop("id", str(uuid4())),
        regulator_id=kwargs.pop("regulator_id", f"HSE-{uuid4().hex[:8]}"),
        agency_id=agency.id if agency else None,
        offender_id=offender.id if offender else None,
        action_date=action_date,
        fine_amount=Decimal(fine_amount) if fine_amount is not None else None,
        **kwargs,
    )
    db.add(case)
    db.flush()
    return case


def make_notice(db, agency=None, offender=None, action_date=TODAY, **kwargs):
    notice = NoticeDB(
        id=kwargs.pop("id", str(uuid4())),
        regulator_id=kwargs.pop("regulator_id", f"IN-{uuid4().hex[:8]}"),
        agency_id=agency.id if agency else None,
        offender_id=offender.id if offender else None,
        action_date=action_date,
        **kwargs,
    )
    db.add(notice)
    db.flush()
    return notice
