"""
Enforcement Repository

Fixed set of parameterized read queries over cases, notices and agencies.
The activity feed and the metrics refresh engine call these directly;
there is no general query builder.

A notice's effective action date is action_date, falling back to
notice_date - the same rule the activity feed applies.
"""
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Any

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models.db_models import AgencyDB, CaseDB, NoticeDB


def _notice_effective_date():
    return func.coalesce(NoticeDB.action_date, NoticeDB.notice_date)


class EnforcementRepository:
    """
    Read-only queries used by the dashboard core.

    Usage:
        repo = EnforcementRepository(db)
        cases = repo.list_cases(agency_id=agency.id, date_from=cutoff)
    """

    def __init__(self, db: Session):
        self.db = db

    # =========================================================================
    # RECORD LISTS
    # =========================================================================

    def list_cases(
        self,
        agency_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        action_type: Optional[str] = None,
    ) -> List[CaseDB]:
        """Cases with offender and agency loaded, newest first."""
        query = self.db.query(CaseDB).options(
            joinedload(CaseDB.offender),
            joinedload(CaseDB.agency),
        )

        if agency_id:
            query = query.filter(CaseDB.agency_id == agency_id)
        if date_from:
            query = query.filter(CaseDB.action_date >= date_from)
        if date_to:
            query = query.filter(CaseDB.action_date <= date_to)
        if action_type:
            query = query.filter(CaseDB.action_type == action_type)

        return query.order_by(CaseDB.action_date.desc(), CaseDB.id).all()

    def list_notices(
        self,
        agency_id: Optional[str] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        action_type: Optional[str] = None,
    ) -> List[NoticeDB]:
        """Notices with offender and agency loaded, newest first."""
        effective_date = _notice_effective_date()
        query = self.db.query(NoticeDB).options(
            joinedload(NoticeDB.offender),
            joinedload(NoticeDB.agency),
        )

        if agency_id:
            query = query.filter(NoticeDB.agency_id == agency_id)
        if date_from:
            query = query.filter(effective_date >= date_from)
        if date_to:
            query = query.filter(effective_date <= date_to)
        if action_type:
            query = query.filter(NoticeDB.action_type == action_type)

        return query.order_by(effective_date.desc(), NoticeDB.id).all()

    def get_notice(self, notice_id: str) -> Optional[NoticeDB]:
        return self.db.query(NoticeDB).filter(NoticeDB.id == notice_id).first()

    def list_agencies(self) -> List[AgencyDB]:
        return self.db.query(AgencyDB).order_by(AgencyDB.code).all()

    # =========================================================================
    # AGGREGATES
    # =========================================================================

    def count_cases(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        """Count cases; with no bounds this is the all-time total."""
        query = self.db.query(func.count(CaseDB.id))
        if date_from:
            query = query.filter(CaseDB.action_date >= date_from)
        if date_to:
            query = query.filter(CaseDB.action_date <= date_to)
        return int(query.scalar() or 0)

    def count_notices(
        self,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> int:
        """Count notices; with no bounds this is the all-time total."""
        effective_date = _notice_effective_date()
        query = self.db.query(func.count(NoticeDB.id))
        if date_from:
            query = query.filter(effective_date >= date_from)
        if date_to:
            query = query.filter(effective_date <= date_to)
        return int(query.scalar() or 0)

    def recent_fines_total(self, date_from: date, date_to: date) -> Decimal:
        """Sum of case fines with action_date inside [date_from, date_to]."""
        return self._case_amount_total(CaseDB.fine_amount, date_from, date_to)

    def recent_costs_total(self, date_from: date, date_to: date) -> Decimal:
        """Sum of awarded costs for cases with action_date inside [date_from, date_to]."""
        return self._case_amount_total(CaseDB.costs_amount, date_from, date_to)

    def _case_amount_total(self, column, date_from: date, date_to: date) -> Decimal:
        total = self.db.query(
            func.coalesce(func.sum(column), 0)
        ).filter(
            CaseDB.action_date >= date_from,
            CaseDB.action_date <= date_to,
        ).scalar()
        return Decimal(str(total or 0))

    def agency_breakdown(self) -> Dict[str, Dict[str, Any]]:
        """
        All-time case/notice counts and fines per agency id.

        Agencies with no records are absent; callers merge against
        list_agencies() to fill zeros.
        """
        breakdown: Dict[str, Dict[str, Any]] = {}

        case_rows = self.db.query(
            CaseDB.agency_id,
            func.count(CaseDB.id),
            func.coalesce(func.sum(CaseDB.fine_amount), 0),
        ).filter(
            CaseDB.agency_id.isnot(None)
        ).group_by(CaseDB.agency_id).all()

        for agency_id, case_count, total_fines in case_rows:
            breakdown[agency_id] = {
                "case_count": int(case_count or 0),
                "notice_count": 0,
                "total_fines": Decimal(str(total_fines or 0)),
            }

        notice_rows = self.db.query(
            NoticeDB.agency_id,
            func.count(NoticeDB.id),
        ).filter(
            NoticeDB.agency_id.isnot(None)
        ).group_by(NoticeDB.agency_id).all()

        for agency_id, notice_count in notice_rows:
            entry = breakdown.setdefault(agency_id, {
                "case_count": 0,
                "notice_count": 0,
                "total_fines": Decimal("0"),
            })
            entry["notice_count"] = int(notice_count or 0)

        return breakdown
