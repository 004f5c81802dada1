"""
Department API endpoints.

Departments and their agent pools. Reads are open to support staff;
changes need an admin, except that agents may set their own availability.
"""

from uuid import UUID

from fastapi import APIRouter, HTTPException, Query, status
from pydantic import BaseModel

from app.api.deps import AdminUser, DepartmentSvc, StaffUser
from app.api.errors import http_error
from app.core.exceptions import LivedeskError
from app.models.department import Department, DepartmentAgent, DepartmentCreate, DepartmentUpdate
from app.models.enums import PrincipalRole

router = APIRouter()


class DeleteDepartmentResponse(BaseModel):
    id: UUID
    detached_sessions: int


class AgentAddRequest(BaseModel):
    agent_id: str


class AgentAvailabilityRequest(BaseModel):
    is_available: bool


@router.get("", response_model=list[Department])
async def list_departments(
    staff: StaffUser,
    department_service: DepartmentSvc,
    active_only: bool = Query(False),
):
    """List departments by sort order."""
    return await department_service.list(active_only=active_only)


@router.post("", response_model=Department, status_code=status.HTTP_201_CREATED)
async def create_department(
    department: DepartmentCreate,
    admin: AdminUser,
    department_service: DepartmentSvc,
):
    """Create a department."""
    try:
        return await department_service.create(department)
    except LivedeskError as e:
        raise http_error(e)


@router.get("/{department_id}", response_model=Department)
async def get_department(
    department_id: UUID,
    staff: StaffUser,
    department_service: DepartmentSvc,
):
    try:
        return await department_service.get(department_id)
    except LivedeskError as e:
        raise http_error(e)


@router.put("/{department_id}", response_model=Department)
async def update_department(
    department_id: UUID,
    update: DepartmentUpdate,
    admin: AdminUser,
    department_service: DepartmentSvc,
):
    """Update a department. The slug is frozen once sessions reference it."""
    try:
        return await department_service.update(department_id, update)
    except LivedeskError as e:
        raise http_error(e)


@router.delete("/{department_id}", response_model=DeleteDepartmentResponse)
async def delete_department(
    department_id: UUID,
    admin: AdminUser,
    department_service: DepartmentSvc,
):
    """Delete a department. Its sessions become unassigned."""
    try:
        detached = await department_service.delete(department_id)
    except LivedeskError as e:
        raise http_error(e)
    return DeleteDepartmentResponse(id=department_id, detached_sessions=detached)


# ===========================================
# Agent pool
# ===========================================


@router.get("/{department_id}/agents", response_model=list[DepartmentAgent])
async def list_department_agents(
    department_id: UUID,
    staff: StaffUser,
    department_service: DepartmentSvc,
    available_only: bool = Query(False),
):
    """List pool members in rotation order."""
    try:
        return await department_service.list_agents(department_id, available_only=available_only)
    except LivedeskError as e:
        raise http_error(e)


@router.post(
    "/{department_id}/agents",
    response_model=DepartmentAgent,
    status_code=status.HTTP_201_CREATED,
)
async def add_department_agent(
    department_id: UUID,
    request: AgentAddRequest,
    admin: AdminUser,
    department_service: DepartmentSvc,
):
    try:
        return await department_service.add_agent(department_id, request.agent_id)
    except LivedeskError as e:
        raise http_error(e)


@router.patch("/{department_id}/agents/{agent_id}", response_model=DepartmentAgent)
async def set_department_agent_availability(
    department_id: UUID,
    agent_id: str,
    request: AgentAvailabilityRequest,
    staff: StaffUser,
    department_service: DepartmentSvc,
):
    """
    Toggle whether the router may pick this agent.

    Agents may only change their own availability.
    """
    if staff.role != PrincipalRole.ADMIN and staff.id != agent_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Agents can only change their own availability",
        )
    member = await department_service.set_agent_availability(
        department_id, agent_id, request.is_available
    )
    if member is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Agent {agent_id} is not in department {department_id}",
        )
    return member


@router.delete("/{department_id}/agents/{agent_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_department_agent(
    department_id: UUID,
    agent_id: str,
    admin: AdminUser,
    department_service: DepartmentSvc,
):
    removed = await department_service.remove_agent(department_id, agent_id)
    if not removed:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Agent {agent_id} is not in department {department_id}",
        )
