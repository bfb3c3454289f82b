"""
Record store - the narrow query/command surface the core uses to reach the database

Services never query the session directly; they go through RecordStore so
that timeouts are translated in one place and the status compare-and-swap
is the single synchronization point for leave transitions.
"""
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import date
from typing import Any, Dict, Iterable, Iterator, List, Optional, Set, Union

from sqlalchemy import or_, update
from sqlalchemy.exc import DBAPIError, OperationalError, TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, selectinload

from leave_scope.core.exceptions import ConflictError, StoreUnavailableError
from leave_scope.models.audit_log import AuditLog
from leave_scope.models.department import Department
from leave_scope.models.leave import LeaveRequest, LeaveStatus
from leave_scope.models.notification import NotificationIntent
from leave_scope.models.principal import Principal
from leave_scope.models.principal_department import PrincipalDepartment
from leave_scope.models.property import Property
from leave_scope.utils.datetime_utils import now_utc
from leave_scope.utils.json_serializer import sanitize_for_json

logger = logging.getLogger(__name__)

StatusFilter = Union[LeaveStatus, Iterable[LeaveStatus], None]


@dataclass(frozen=True)
class LeaveFilter:
    """Equality and date-range predicates for query_leave_requests

    Range fields follow the column they constrain, e.g. start_date_lte=d
    keeps requests whose start_date <= d. Combine start_date_lte=end and
    end_date_gte=start to select every request overlapping [start, end].
    """
    property_id: Optional[int] = None
    department_id: Optional[int] = None
    department_ids: Optional[Iterable[int]] = None
    requester_id: Optional[int] = None
    status: StatusFilter = None
    is_deleted: Optional[bool] = False
    start_date_lte: Optional[date] = None
    start_date_gte: Optional[date] = None
    end_date_gte: Optional[date] = None
    end_date_lte: Optional[date] = None


class RecordStore:
    """SQLAlchemy-backed record store bound to one session (one unit of work)"""

    def __init__(self, db: Session):
        self.db = db

    @contextmanager
    def _guard(self, operation: str) -> Iterator[None]:
        """Translate timeouts and lost connections into StoreUnavailableError"""
        try:
            yield
        except (OperationalError, PoolTimeoutError) as exc:
            self.db.rollback()
            logger.error("record store unavailable: operation=%s error=%s", operation, exc)
            raise StoreUnavailableError() from exc
        except DBAPIError as exc:
            self.db.rollback()
            if exc.connection_invalidated:
                logger.error("record store connection lost: operation=%s error=%s", operation, exc)
                raise StoreUnavailableError() from exc
            raise

    @contextmanager
    def _isolated(self, operation: str) -> Iterator[None]:
        """Side-channel write: any failure leaves the session clean for the caller"""
        try:
            with self._guard(operation):
                yield
        except Exception:
            self.db.rollback()
            raise

    # ------------------------------------------------------------------
    # Organization directory
    # ------------------------------------------------------------------

    def get_principal(self, principal_id: int) -> Optional[Principal]:
        with self._guard("get_principal"):
            return (
                self.db.query(Principal)
                .options(
                    selectinload(Principal.role_grants),
                    selectinload(Principal.property_assignments),
                    selectinload(Principal.department_assignments),
                )
                .filter(Principal.id == principal_id)
                .first()
            )

    def get_property(self, property_id: int) -> Optional[Property]:
        with self._guard("get_property"):
            return self.db.query(Property).filter(Property.id == property_id).first()

    def get_department(self, department_id: int) -> Optional[Department]:
        with self._guard("get_department"):
            return self.db.query(Department).filter(Department.id == department_id).first()

    def list_departments(self, property_id: int, active_only: bool = True) -> List[Department]:
        with self._guard("list_departments"):
            query = self.db.query(Department).filter(Department.property_id == property_id)
            if active_only:
                query = query.filter(Department.active == True)  # noqa: E712
            return query.order_by(Department.id).all()

    def get_principal_names(self, principal_ids: Iterable[int]) -> Dict[int, str]:
        ids = list(set(principal_ids))
        if not ids:
            return {}
        with self._guard("get_principal_names"):
            rows = self.db.query(Principal.id, Principal.name).filter(Principal.id.in_(ids)).all()
        return {principal_id: name for principal_id, name in rows}

    def get_department_roster(self, department_id: int) -> Set[int]:
        return self.get_rosters([department_id]).get(department_id, set())

    def get_rosters(self, department_ids: Iterable[int]) -> Dict[int, Set[int]]:
        """Active principal ids per department, fetched in one query"""
        ids = list(department_ids)
        rosters: Dict[int, Set[int]] = {dept_id: set() for dept_id in ids}
        if not ids:
            return rosters
        with self._guard("get_rosters"):
            rows = (
                self.db.query(PrincipalDepartment.department_id, PrincipalDepartment.principal_id)
                .join(Principal, Principal.id == PrincipalDepartment.principal_id)
                .filter(
                    PrincipalDepartment.department_id.in_(ids),
                    Principal.active == True,  # noqa: E712
                )
                .all()
            )
        for department_id, principal_id in rows:
            rosters[department_id].add(principal_id)
        return rosters

    # ------------------------------------------------------------------
    # Leave requests
    # ------------------------------------------------------------------

    def get_leave_request(self, leave_request_id: int) -> Optional[LeaveRequest]:
        with self._guard("get_leave_request"):
            return self.db.query(LeaveRequest).filter(LeaveRequest.id == leave_request_id).first()

    def query_leave_requests(self, leave_filter: LeaveFilter) -> List[LeaveRequest]:
        with self._guard("query_leave_requests"):
            query = self.db.query(LeaveRequest)
            f = leave_filter
            if f.property_id is not None:
                query = query.filter(LeaveRequest.property_id == f.property_id)
            if f.department_id is not None:
                query = query.filter(LeaveRequest.department_id == f.department_id)
            if f.department_ids is not None:
                query = query.filter(LeaveRequest.department_id.in_(list(f.department_ids)))
            if f.requester_id is not None:
                query = query.filter(LeaveRequest.requester_id == f.requester_id)
            if f.status is not None:
                if isinstance(f.status, LeaveStatus):
                    query = query.filter(LeaveRequest.status == f.status)
                else:
                    query = query.filter(LeaveRequest.status.in_(list(f.status)))
            if f.is_deleted is not None:
                query = query.filter(LeaveRequest.is_deleted == f.is_deleted)
            if f.start_date_lte is not None:
                query = query.filter(LeaveRequest.start_date <= f.start_date_lte)
            if f.start_date_gte is not None:
                query = query.filter(LeaveRequest.start_date >= f.start_date_gte)
            if f.end_date_gte is not None:
                query = query.filter(LeaveRequest.end_date >= f.end_date_gte)
            if f.end_date_lte is not None:
                query = query.filter(LeaveRequest.end_date <= f.end_date_lte)
            return query.order_by(LeaveRequest.id).all()

    def query_scoped_leave_requests(
        self,
        requester_id: int,
        property_ids: Iterable[int],
        department_ids: Iterable[int],
        global_scope: bool,
        property_id: Optional[int] = None,
        status: Optional[LeaveStatus] = None,
    ) -> List[LeaveRequest]:
        """
        Non-deleted requests inside a scope, newest first

        Pushes the resolver's scope rules down into SQL so listing does not
        load the whole table. Callers still re-check each row with the
        resolver.
        """
        with self._guard("query_scoped_leave_requests"):
            query = self.db.query(LeaveRequest).filter(LeaveRequest.is_deleted == False)  # noqa: E712
            if not global_scope:
                conditions = [LeaveRequest.requester_id == requester_id]
                property_ids = list(property_ids)
                department_ids = list(department_ids)
                if property_ids:
                    conditions.append(LeaveRequest.property_id.in_(property_ids))
                if department_ids:
                    conditions.append(LeaveRequest.department_id.in_(department_ids))
                query = query.filter(or_(*conditions))
            if property_id is not None:
                query = query.filter(LeaveRequest.property_id == property_id)
            if status is not None:
                query = query.filter(LeaveRequest.status == status)
            return query.order_by(LeaveRequest.created_at.desc(), LeaveRequest.id.desc()).all()

    def insert_leave_request(self, **fields: Any) -> LeaveRequest:
        with self._guard("insert_leave_request"):
            timestamp = now_utc()
            leave_request = LeaveRequest(created_at=timestamp, updated_at=timestamp, **fields)
            self.db.add(leave_request)
            self.db.commit()
            self.db.refresh(leave_request)
            return leave_request

    def conditional_update_leave_request(
        self,
        leave_request_id: int,
        expected_status: LeaveStatus,
        fields: Dict[str, Any],
    ) -> LeaveRequest:
        """
        Apply fields only if the row is still in expected_status (compare-and-swap)

        All fields land in one UPDATE statement, so a transition is applied
        entirely or not at all. Zero affected rows means another caller won.

        Raises:
            ConflictError: If the row is no longer in expected_status
        """
        values = dict(fields)
        values.setdefault("updated_at", now_utc())
        with self._guard("conditional_update_leave_request"):
            result = self.db.execute(
                update(LeaveRequest)
                .where(
                    LeaveRequest.id == leave_request_id,
                    LeaveRequest.status == expected_status,
                    LeaveRequest.is_deleted == False,  # noqa: E712
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise ConflictError(
                    f"Leave request {leave_request_id} is no longer {expected_status.value}"
                )
            self.db.commit()
            leave_request = self.db.query(LeaveRequest).filter(LeaveRequest.id == leave_request_id).one()
            self.db.refresh(leave_request)
            return leave_request

    def soft_delete_leave_request(self, leave_request_id: int, actor_id: int) -> LeaveRequest:
        """Set is_deleted without touching status; conditional on not already deleted"""
        with self._guard("soft_delete_leave_request"):
            result = self.db.execute(
                update(LeaveRequest)
                .where(
                    LeaveRequest.id == leave_request_id,
                    LeaveRequest.is_deleted == False,  # noqa: E712
                )
                .values(is_deleted=True, deleted_by_id=actor_id, updated_at=now_utc())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                self.db.rollback()
                raise ConflictError(f"Leave request {leave_request_id} is already deleted")
            self.db.commit()
            leave_request = self.db.query(LeaveRequest).filter(LeaveRequest.id == leave_request_id).one()
            self.db.refresh(leave_request)
            return leave_request

    # ------------------------------------------------------------------
    # Side channels
    # ------------------------------------------------------------------

    def append_audit_entry(
        self,
        actor_id: int,
        action: str,
        entity_type: str,
        entity_id: Optional[int] = None,
        meta: Optional[Dict[str, Any]] = None,
    ) -> AuditLog:
        with self._isolated("append_audit_entry"):
            # Explicitly set created_at to avoid SQLite issues with server_default
            audit_log = AuditLog(
                actor_id=actor_id,
                action=action,
                entity_type=entity_type,
                entity_id=entity_id,
                meta_json=sanitize_for_json(meta) if meta is not None else None,
                created_at=now_utc(),
            )
            self.db.add(audit_log)
            self.db.commit()
            self.db.refresh(audit_log)
            return audit_log

    def enqueue_notification(
        self,
        recipient_id: int,
        kind: str,
        leave_request_id: Optional[int] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> NotificationIntent:
        with self._isolated("enqueue_notification"):
            intent = NotificationIntent(
                recipient_id=recipient_id,
                kind=kind,
                leave_request_id=leave_request_id,
                data=sanitize_for_json(data) if data is not None else None,
                created_at=now_utc(),
            )
            self.db.add(intent)
            self.db.commit()
            self.db.refresh(intent)
            return intent
