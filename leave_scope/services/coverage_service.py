"""
Coverage service - department staffing coverage and leave conflict detection

Read-only. Departments, rosters and the leave intervals of the whole window
are fetched once per call; per-day counts come from a difference array per
department, so the cost does not grow with store round trips per day.
"""
import enum
import logging
import threading
import time
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from leave_scope.constants import (
    CONFLICT_MIN_STAFF_ON_LEAVE,
    CRITICAL_COVERAGE_PERCENT,
    FULL_COVERAGE_PERCENT,
)
from leave_scope.core.config import settings
from leave_scope.core.exceptions import AuthorizationError, NotFoundError, ValidationError
from leave_scope.models.department import Department
from leave_scope.models.leave import LeaveStatus, LeaveType
from leave_scope.services.leave_service import (
    load_actor,
    resolve_request_target,
    validate_leave_dates,
)
from leave_scope.services.record_store import LeaveFilter, RecordStore
from leave_scope.services.scope_service import resolve_access
from leave_scope.utils.datetime_utils import days_between_inclusive

logger = logging.getLogger(__name__)

COVERAGE_STATUSES = (LeaveStatus.APPROVED,)
# Early warning: pending requests count too
CONFLICT_STATUSES = (LeaveStatus.APPROVED, LeaveStatus.PENDING)


@dataclass(frozen=True)
class CoverageSnapshot:
    department_id: int
    department_name: str
    date: date
    total_staff: int
    staff_on_leave: int
    coverage_percentage: int
    upcoming_leaves: int = 0


@dataclass(frozen=True)
class LeaveEvent:
    """One approved or pending leave on the coverage calendar"""
    leave_request_id: int
    requester_id: int
    requester_name: str
    department_id: int
    department_name: str
    leave_type: LeaveType
    status: LeaveStatus
    start_date: date
    end_date: date


@dataclass(frozen=True)
class Conflict:
    department_id: int
    department_name: str
    date: date
    total_staff: int
    staff_on_leave: int
    coverage_percentage: int
    is_critical: bool


class ScanStatus(str, enum.Enum):
    COMPLETE = "complete"
    CANCELLED = "cancelled"


@dataclass
class ConflictScan:
    """Result of find_conflicts; conflicts are partial unless status is COMPLETE"""
    status: ScanStatus
    conflicts: List[Conflict] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.status == ScanStatus.COMPLETE


def coverage_percentage(total_staff: int, staff_on_leave: int) -> int:
    """
    Share of the roster still working, rounded half up

    100 when the department has no staff. Never below 0.
    """
    if total_staff <= 0:
        return FULL_COVERAGE_PERCENT
    available = max(total_staff - staff_on_leave, 0)
    # round(100 * available / total) with .5 rounded up, in integer arithmetic
    return (200 * available + total_staff) // (2 * total_staff)


def is_conflict(total_staff: int, staff_on_leave: int, percentage: int) -> bool:
    if total_staff <= 0:
        return False
    return staff_on_leave >= CONFLICT_MIN_STAFF_ON_LEAVE or percentage < CRITICAL_COVERAGE_PERCENT


def validate_window(start_date: date, end_date: date) -> None:
    """
    Validate an analysis window

    Raises:
        ValidationError: end before start, or window over MAX_ANALYSIS_WINDOW_DAYS
    """
    validate_leave_dates(start_date, end_date)
    span = days_between_inclusive(start_date, end_date)
    if span > settings.MAX_ANALYSIS_WINDOW_DAYS:
        raise ValidationError(
            f"Date window of {span} days exceeds the maximum of {settings.MAX_ANALYSIS_WINDOW_DAYS}"
        )


# ----------------------------------------------------------------------
# Loading
# ----------------------------------------------------------------------

def _visible_departments(
    store: RecordStore,
    property_id: int,
    viewer_id: Optional[int],
) -> List[Department]:
    """
    Active departments of a property, narrowed to what the viewer may see

    Raises:
        NotFoundError: Unknown property
        AuthorizationError: Viewer given and no department is visible to them
    """
    if store.get_property(property_id) is None:
        raise NotFoundError(f"Property with id {property_id} not found")

    departments = store.list_departments(property_id, active_only=True)
    if viewer_id is None:
        return departments

    _, scope = load_actor(store, viewer_id)
    visible = [
        d for d in departments
        if resolve_access(scope, d.property_id, d.id).can_view
    ]
    if not visible:
        raise AuthorizationError(
            f"principal {viewer_id} cannot view any department of property {property_id}"
        )
    return visible


def _leave_intervals(
    store: RecordStore,
    department_ids: Sequence[int],
    statuses: Iterable[LeaveStatus],
    start_date: date,
    end_date: date,
) -> Dict[int, List[Tuple[date, date]]]:
    """Non-deleted leave overlapping [start_date, end_date], grouped by department"""
    intervals: Dict[int, List[Tuple[date, date]]] = {dept_id: [] for dept_id in department_ids}
    if not department_ids:
        return intervals
    requests = store.query_leave_requests(
        LeaveFilter(
            department_ids=department_ids,
            status=tuple(statuses),
            start_date_lte=end_date,
            end_date_gte=start_date,
        )
    )
    for leave_request in requests:
        intervals[leave_request.department_id].append(
            (leave_request.start_date, leave_request.end_date)
        )
    return intervals


def daily_leave_counts(
    intervals: Iterable[Tuple[date, date]],
    start_date: date,
    end_date: date,
) -> List[int]:
    """
    Number of intervals covering each day of [start_date, end_date]

    Each interval is clipped to the window and added to a difference array;
    a prefix sum gives the per-day counts.
    """
    days = days_between_inclusive(start_date, end_date)
    diff = [0] * (days + 1)
    for leave_start, leave_end in intervals:
        first = max(leave_start, start_date)
        last = min(leave_end, end_date)
        if first > last:
            continue
        diff[(first - start_date).days] += 1
        diff[(last - start_date).days + 1] -= 1

    counts = []
    running = 0
    for delta in diff[:days]:
        running += delta
        counts.append(running)
    return counts


# ----------------------------------------------------------------------
# Analysis
# ----------------------------------------------------------------------

def analyze_coverage(
    db: Session,
    property_id: int,
    on_date: date,
    viewer_id: Optional[int] = None,
) -> List[CoverageSnapshot]:
    """
    Coverage of every active department of a property on one date

    Only approved leave counts toward staff_on_leave. upcoming_leaves counts
    approved and pending requests starting within UPCOMING_LEAVE_DAYS of the
    date (inclusive).

    Args:
        db: Database session
        property_id: Property to analyze
        on_date: Day to analyze
        viewer_id: When given, only departments this principal may view

    Returns:
        Snapshots sorted by coverage ascending, then department id
    """
    store = RecordStore(db)
    departments = _visible_departments(store, property_id, viewer_id)
    department_ids = [d.id for d in departments]
    rosters = store.get_rosters(department_ids)
    on_leave = _leave_intervals(store, department_ids, COVERAGE_STATUSES, on_date, on_date)

    horizon = on_date + timedelta(days=settings.UPCOMING_LEAVE_DAYS)
    upcoming: Dict[int, int] = {dept_id: 0 for dept_id in department_ids}
    if department_ids:
        for leave_request in store.query_leave_requests(
            LeaveFilter(
                department_ids=department_ids,
                status=CONFLICT_STATUSES,
                start_date_gte=on_date,
                start_date_lte=horizon,
            )
        ):
            upcoming[leave_request.department_id] += 1

    snapshots = []
    for department in departments:
        total = len(rosters.get(department.id, ()))
        staff_on_leave = len(on_leave[department.id])
        snapshots.append(
            CoverageSnapshot(
                department_id=department.id,
                department_name=department.name,
                date=on_date,
                total_staff=total,
                staff_on_leave=staff_on_leave,
                coverage_percentage=coverage_percentage(total, staff_on_leave),
                upcoming_leaves=upcoming[department.id],
            )
        )

    snapshots.sort(key=lambda s: (s.coverage_percentage, s.department_id))
    return snapshots


def _scan(
    departments: Sequence[Department],
    rosters: Dict[int, set],
    intervals: Dict[int, List[Tuple[date, date]]],
    start_date: date,
    end_date: date,
    cancel_event: Optional[threading.Event],
    deadline: float,
) -> ConflictScan:
    def stopped() -> bool:
        return (cancel_event is not None and cancel_event.is_set()) or time.monotonic() > deadline

    conflicts: List[Conflict] = []
    status = ScanStatus.COMPLETE
    for department in departments:
        if stopped():
            status = ScanStatus.CANCELLED
            break
        total = len(rosters.get(department.id, ()))
        if total == 0:
            continue
        counts = daily_leave_counts(intervals.get(department.id, ()), start_date, end_date)
        for offset, staff_on_leave in enumerate(counts):
            if stopped():
                status = ScanStatus.CANCELLED
                break
            percentage = coverage_percentage(total, staff_on_leave)
            if not is_conflict(total, staff_on_leave, percentage):
                continue
            conflicts.append(
                Conflict(
                    department_id=department.id,
                    department_name=department.name,
                    date=start_date + timedelta(days=offset),
                    total_staff=total,
                    staff_on_leave=staff_on_leave,
                    coverage_percentage=percentage,
                    is_critical=percentage < CRITICAL_COVERAGE_PERCENT,
                )
            )
        if status == ScanStatus.CANCELLED:
            break

    conflicts.sort(key=lambda c: (c.coverage_percentage, c.date, c.department_id))
    return ConflictScan(status=status, conflicts=conflicts)


def find_conflicts(
    db: Session,
    property_id: int,
    start_date: date,
    end_date: date,
    viewer_id: Optional[int] = None,
    cancel_event: Optional[threading.Event] = None,
    deadline_seconds: Optional[float] = None,
) -> ConflictScan:
    """
    Flag every (day, department) pair in the window that is short-staffed

    A pair is a conflict when the department has staff and either at least
    two are on leave or coverage is under 50%. Approved and pending leave
    both count.

    The scan stops early, returning status=cancelled with what it found so
    far, when cancel_event is set or deadline_seconds elapses.

    Raises:
        ValidationError: Bad or oversized window (checked before store access)
        NotFoundError: Unknown property
        AuthorizationError: Viewer cannot see any department of the property
    """
    validate_window(start_date, end_date)
    budget = deadline_seconds if deadline_seconds is not None else settings.ANALYZER_SCAN_TIMEOUT_SECONDS
    deadline = time.monotonic() + budget

    store = RecordStore(db)
    departments = _visible_departments(store, property_id, viewer_id)
    department_ids = [d.id for d in departments]
    rosters = store.get_rosters(department_ids)
    intervals = _leave_intervals(store, department_ids, CONFLICT_STATUSES, start_date, end_date)

    result = _scan(departments, rosters, intervals, start_date, end_date, cancel_event, deadline)
    if not result.complete:
        logger.warning(
            "conflict scan cancelled: property_id=%s start=%s end=%s partial_conflicts=%s",
            property_id, start_date, end_date, len(result.conflicts),
        )
    return result


def check_request_conflicts(
    db: Session,
    requester_id: int,
    start_date: date,
    end_date: date,
    property_id: Optional[int] = None,
    department_id: Optional[int] = None,
    deadline_seconds: Optional[float] = None,
) -> ConflictScan:
    """
    Conflicts that would exist if the requester filed this leave now

    Runs the conflict rule over the requester's target department with the
    prospective request added as if it were pending. Requests with no
    department have nothing to check and come back complete and empty.
    A scan that runs out of budget comes back with status=cancelled, so an
    empty list only means "no conflict" when the scan is complete.
    """
    validate_window(start_date, end_date)
    budget = deadline_seconds if deadline_seconds is not None else settings.ANALYZER_SCAN_TIMEOUT_SECONDS
    deadline = time.monotonic() + budget

    store = RecordStore(db)
    principal, scope = load_actor(store, requester_id)
    _, target_department_id = resolve_request_target(store, principal, scope, property_id, department_id)
    if target_department_id is None:
        return ConflictScan(status=ScanStatus.COMPLETE)

    department = store.get_department(target_department_id)
    if department is None or not department.active:
        return ConflictScan(status=ScanStatus.COMPLETE)

    rosters = {department.id: store.get_department_roster(department.id)}
    intervals = _leave_intervals(store, [department.id], CONFLICT_STATUSES, start_date, end_date)
    intervals[department.id].append((start_date, end_date))

    result = _scan([department], rosters, intervals, start_date, end_date, None, deadline)
    if not result.complete:
        logger.warning(
            "conflict pre-check cancelled: requester_id=%s department_id=%s start=%s end=%s",
            requester_id, department.id, start_date, end_date,
        )
    return result



# ----------------------------------------------------------------------
# Calendar
# ----------------------------------------------------------------------

def list_leave_events(
    db: Session,
    viewer_id: int,
    property_id: int,
    start_date: date,
    end_date: date,
    department_id: Optional[int] = None,
) -> List[LeaveEvent]:
    """
    Approved and pending leave overlapping a window, for the coverage calendar

    Only departments the viewer may see are included. Leave filed without a
    department never shows up here.

    Args:
        db: Database session
        viewer_id: Principal asking
        property_id: Property to list
        start_date: First day of the window
        end_date: Last day of the window
        department_id: Narrow to one department of the property

    Returns:
        Events sorted by start date, then leave request id

    Raises:
        ValidationError: Bad or oversized window
        NotFoundError: Unknown property, or a department outside it
        AuthorizationError: Viewer cannot see the property or the department
    """
    validate_window(start_date, end_date)

    store = RecordStore(db)
    departments = _visible_departments(store, property_id, viewer_id)
    if department_id is not None:
        department = store.get_department(department_id)
        if department is None or department.property_id != property_id:
            raise NotFoundError(f"Department with id {department_id} not found")
        if not department.active:
            return []
        departments = [d for d in departments if d.id == department_id]
        if not departments:
            raise AuthorizationError(
                f"principal {viewer_id} cannot view department {department_id}"
            )

    names_by_department = {d.id: d.name for d in departments}
    requests = store.query_leave_requests(
        LeaveFilter(
            department_ids=list(names_by_department),
            status=CONFLICT_STATUSES,
            start_date_lte=end_date,
            end_date_gte=start_date,
        )
    )
    requester_names = store.get_principal_names(r.requester_id for r in requests)

    events = [
        LeaveEvent(
            leave_request_id=r.id,
            requester_id=r.requester_id,
            requester_name=requester_names.get(r.requester_id, ""),
            department_id=r.department_id,
            department_name=names_by_department[r.department_id],
            leave_type=r.leave_type,
            status=r.status,
            start_date=r.start_date,
            end_date=r.end_date,
        )
        for r in requests
    ]
    events.sort(key=lambda e: (e.start_date, e.leave_request_id))
    return events
