# =============================================================================
# lab_core/services/borrow_service.py
# Borrow request workflow on top of LabDataService
# =============================================================================
"""
BorrowService - student requests and admin transitions.

    pending ──approve──► approved ──return──► returned
       │
       └────reject────► rejected

Stock accounting: approving ``q`` units takes them out of
``available_quantity``; returning puts the same ``q`` back; rejecting
leaves stock untouched. ``0 <= available_quantity <= total_quantity`` holds
after every transition.

Every operation returns a ServiceResult; rule violations are failures, not
exceptions.
"""

from __future__ import annotations
from dataclasses import replace
from datetime import date, datetime
from typing import Optional, Union

from lab_core.errors import WorkflowError
from lab_core.models import (
    BorrowRequest,
    Component,
    Notification,
    NotificationType,
    RequestStatus,
    User,
    new_id,
    utc_now_iso,
)
from lab_core.offline.unified_data_service import LabDataService
from .base_service import BaseService, ServiceResult


class BorrowService(BaseService):
    """
    Usage:
        borrow = BorrowService(data_service)
        result = await borrow.submit_request(user, "comp-1", 2, "2026-11-01")
        if result:
            await borrow.approve_request(result.data.id, "Administrator")
    """

    def __init__(self, data_service: LabDataService):
        super().__init__()
        self.data = data_service

    # =========================================================================
    # LOOKUPS
    # =========================================================================

    def _require_request(self, request_id: str) -> BorrowRequest:
        request = self.data.get_request(request_id)
        if request is None:
            raise WorkflowError(
                f"Request {request_id} not found",
                request_id=request_id,
                code="REQ_001",
            )
        return request

    def _require_component(self, component_id: str) -> Component:
        component = self.data.get_component(component_id)
        if component is None:
            raise WorkflowError(
                f"Component {component_id} not found",
                details={"component_id": component_id},
                code="REQ_001",
            )
        return component

    @staticmethod
    def _check_transition(request: BorrowRequest, target: RequestStatus) -> None:
        if not request.status.can_transition(target):
            raise WorkflowError(
                f"Cannot move request from {request.status.value} to {target.value}",
                request_id=request.id,
                current=request.status.value,
                target=target.value,
            )

    async def _notify(self, user_id: str, title: str, message: str, kind: NotificationType) -> None:
        await self.data.add_notification(Notification(
            id=new_id("notif"),
            user_id=user_id,
            title=title,
            message=message,
            type=kind,
            read=False,
            created_at=utc_now_iso(),
        ))

    # =========================================================================
    # STUDENT ACTIONS
    # =========================================================================

    async def submit_request(
        self,
        user: User,
        component_id: str,
        quantity: int,
        due_date: Union[str, date, datetime],
        notes: Optional[str] = None,
    ) -> ServiceResult:
        """Create a pending request for ``quantity`` units of a component."""
        return await self.safe_execute(
            f"Submitting request for {component_id}",
            self._submit, user, component_id, quantity, due_date, notes,
        )

    async def _submit(self, user, component_id, quantity, due_date, notes) -> BorrowRequest:
        component = self._require_component(component_id)

        if quantity <= 0:
            raise WorkflowError("Quantity must be positive", code="STOCK_001",
                                details={"quantity": quantity})
        if quantity > component.available_quantity:
            raise WorkflowError(
                f"Only {component.available_quantity} x {component.name} available",
                code="STOCK_001",
                details={"requested": quantity, "available": component.available_quantity},
            )

        if isinstance(due_date, (date, datetime)):
            due_date = due_date.isoformat()

        request = BorrowRequest(
            id=new_id("req"),
            student_id=user.id,
            student_name=user.name,
            roll_no=user.roll_no or "",
            mobile=user.mobile or "",
            component_id=component.id,
            component_name=component.name,
            quantity=quantity,
            request_date=utc_now_iso(),
            due_date=due_date,
            status=RequestStatus.PENDING,
            notes=notes,
        )
        await self.data.add_request(request)
        return request

    # =========================================================================
    # ADMIN ACTIONS
    # =========================================================================

    async def approve_request(self, request_id: str, admin_name: str) -> ServiceResult:
        return await self.safe_execute(
            f"Approving request {request_id}", self._approve, request_id, admin_name
        )

    async def _approve(self, request_id: str, admin_name: str) -> BorrowRequest:
        request = self._require_request(request_id)
        self._check_transition(request, RequestStatus.APPROVED)
        component = self._require_component(request.component_id)

        if component.available_quantity < request.quantity:
            raise WorkflowError(
                f"Insufficient stock for {component.name}",
                request_id=request.id,
                code="STOCK_001",
                details={"requested": request.quantity, "available": component.available_quantity},
            )

        approved = replace(
            request,
            status=RequestStatus.APPROVED,
            approved_by=admin_name,
            approved_at=utc_now_iso(),
        )
        await self.data.update_request(approved)
        await self.data.update_component(replace(
            component,
            available_quantity=component.available_quantity - request.quantity,
        ))
        await self._notify(
            request.student_id,
            "Request Approved",
            f"Your request for {request.quantity} x {request.component_name} has been approved.",
            NotificationType.SUCCESS,
        )
        return approved

    async def reject_request(
        self,
        request_id: str,
        admin_name: str,
        notes: Optional[str] = None,
    ) -> ServiceResult:
        return await self.safe_execute(
            f"Rejecting request {request_id}", self._reject, request_id, admin_name, notes
        )

    async def _reject(self, request_id: str, admin_name: str, notes: Optional[str]) -> BorrowRequest:
        request = self._require_request(request_id)
        self._check_transition(request, RequestStatus.REJECTED)

        rejected = replace(
            request,
            status=RequestStatus.REJECTED,
            approved_by=admin_name,
            approved_at=utc_now_iso(),
            notes=notes if notes is not None else request.notes,
        )
        await self.data.update_request(rejected)
        await self._notify(
            request.student_id,
            "Request Rejected",
            f"Your request for {request.quantity} x {request.component_name} was rejected.",
            NotificationType.ERROR,
        )
        return rejected

    async def return_request(self, request_id: str) -> ServiceResult:
        return await self.safe_execute(
            f"Returning request {request_id}", self._return, request_id
        )

    async def _return(self, request_id: str) -> BorrowRequest:
        request = self._require_request(request_id)
        self._check_transition(request, RequestStatus.RETURNED)
        component = self._require_component(request.component_id)

        restored = component.available_quantity + request.quantity
        if restored > component.total_quantity:
            self.logger.warning(
                f"Return of {request.id} would exceed capacity of {component.id}; capping"
            )
            restored = component.total_quantity

        returned = replace(request, status=RequestStatus.RETURNED, returned_at=utc_now_iso())
        await self.data.update_request(returned)
        await self.data.update_component(replace(component, available_quantity=restored))
        await self._notify(
            request.student_id,
            "Component Returned",
            f"Return of {request.quantity} x {request.component_name} recorded.",
            NotificationType.INFO,
        )
        return returned

    async def add_inventory(
        self,
        name: str,
        category: str,
        quantity: int,
        description: Optional[str] = None,
    ) -> ServiceResult:
        """Register a new component type, fully in stock."""
        return await self.safe_execute(
            f"Adding component {name}", self._add_inventory, name, category, quantity, description
        )

    async def _add_inventory(self, name, category, quantity, description) -> Component:
        if quantity < 0:
            raise WorkflowError("Quantity cannot be negative", code="STOCK_001",
                                details={"quantity": quantity})
        component = Component(
            id=new_id("comp"),
            name=name,
            category=category,
            total_quantity=quantity,
            available_quantity=quantity,
            description=description,
        )
        await self.data.add_component(component)
        return component
