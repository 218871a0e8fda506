"""Assignment endpoints — detail view and completion bookkeeping."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel

from intake.application.collaborators import call
from intake.domain.entities.assignment import Assignment
from intake.domain.value_objects.enums import ErrorKind
from intake.domain.value_objects.result import Result
from intake.infrastructure.api.dependencies import Container, get_container

router = APIRouter(prefix="/assignments", tags=["assignments"])

_STATUS_CODES = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONCURRENT_UPDATE: 409,
    ErrorKind.VALIDATION_REJECT: 422,
}


class ToggleCompletionRequest(BaseModel):
    assignee: str
    practice: str


def _raise_for(result: Result) -> None:
    if not result.ok:
        raise HTTPException(status_code=_STATUS_CODES.get(result.kind, 503), detail=result.error)


@router.get("/{assignment_id}")
async def get_assignment(assignment_id: int, container: Container = Depends(get_container)):
    """Get one assignment with per-practice pair statuses."""
    result = await call(f"load assignment {assignment_id}", container.assignments.get_by_id(assignment_id))
    _raise_for(result)
    if result.value is None:
        raise HTTPException(status_code=404, detail="Assignment not found")
    return _serialize_assignment(result.value)


@router.post("/{assignment_id}/completions/toggle")
async def toggle_completion(
    assignment_id: int,
    body: ToggleCompletionRequest,
    container: Container = Depends(get_container),
):
    result = await container.completions.toggle(assignment_id, body.assignee, body.practice)
    _raise_for(result)
    return _serialize_assignment(result.value.assignment)


@router.delete("/{assignment_id}/practices/{practice}")
async def remove_practice(assignment_id: int, practice: str, container: Container = Depends(get_container)):
    result = await container.completions.remove_practice(assignment_id, practice)
    _raise_for(result)
    return _serialize_assignment(result.value.assignment)


@router.post("/{assignment_id}/auto-assign")
async def auto_assign(assignment_id: int, container: Container = Depends(get_container)):
    result = await container.auto_assign.execute(assignment_id)
    _raise_for(result)
    plan = result.value
    return {
        "success": plan.ok,
        "message": plan.message,
        "assigned": plan.assignees,
        "new_assignees": plan.new_assignees,
        "region": plan.region,
        "status": plan.status.value if plan.status else None,
    }


def _serialize_assignment(a: Assignment) -> dict:
    """Convert an Assignment to an API response dict."""
    return {
        "id": a.id,
        "kind": a.kind.value,
        "opportunity_id": a.opportunity_id,
        "status": a.status.value,
        "practices": [
            {
                "name": practice,
                "status": a.practice_status(practice).value,
                "assignees": [
                    {"name": assignee, "status": a.pair_status(assignee, practice).value}
                    for assignee in a.assignees_for(practice)
                ],
            }
            for practice in a.practices
        ],
        "completions": {key.encode(): c.to_dict() for key, c in a.completions.items()},
        "owner": a.owner,
        "isr": a.isr,
        "pm": a.pm,
        "customer_name": a.customer_name,
        "opportunity_name": a.opportunity_name,
        "region": a.region,
        "eta": a.eta,
        "notes": a.notes,
        "opportunity_url": a.opportunity_url,
        "submitted_by": a.submitted_by,
        "notification_users": [{"name": r.name, "email": r.email} for r in a.notification_users],
        "details": a.details,
        "created_at": a.created_at.isoformat() if a.created_at else None,
        "unassigned_at": a.unassigned_at.isoformat() if a.unassigned_at else None,
        "assigned_at": a.assigned_at.isoformat() if a.assigned_at else None,
        "pending_approval_at": a.pending_approval_at.isoformat() if a.pending_approval_at else None,
        "completed_at": a.completed_at.isoformat() if a.completed_at else None,
        "approval_wait_hours": round(a.approval_wait_hours, 2),
        "version": a.version,
    }
