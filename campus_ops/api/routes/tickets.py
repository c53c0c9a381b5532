"""
Maintenance ticket endpoints, including multipart creation with attachments.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.api.deps import get_current_principal
from campus_ops.core.exceptions import ValidationError
from campus_ops.core.permissions import Principal
from campus_ops.db.session import get_db
from campus_ops.models.enums import TicketStatus
from campus_ops.schemas.ticket import TicketAssign, TicketCreate, TicketResponse, TicketStatusUpdate
from campus_ops.services import storage_service, ticket_service

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.post("/simple", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket_simple(
    data: TicketCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Report an incident without attachments."""
    return await ticket_service.create_ticket(db, principal, data)


@router.post("/", response_model=TicketResponse, status_code=status.HTTP_201_CREATED)
async def create_ticket(
    ticket: str = Form(..., description="Ticket fields as a JSON object"),
    files: Optional[list[UploadFile]] = File(None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Report an incident with up to three image/PDF attachments.
    Nothing is stored if any attachment or field is rejected.
    """
    try:
        data = TicketCreate.model_validate_json(ticket)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid ticket payload",
            errors=e.errors(include_url=False, include_context=False),
        ) from e

    uploads = storage_service.validate_attachments(files)
    urls = await storage_service.store_files(uploads)
    try:
        return await ticket_service.create_ticket(db, principal, data, urls)
    except Exception:
        storage_service.delete_files(urls)
        raise


@router.get("/my", response_model=list[TicketResponse])
async def list_my_tickets(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ticket_service.list_user_tickets(db, principal)


@router.get("/assigned", response_model=list[TicketResponse])
async def list_assigned_tickets(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ticket_service.list_assigned_tickets(db, principal)


@router.get("/", response_model=list[TicketResponse])
async def list_tickets(
    ticket_status: Optional[TicketStatus] = Query(None, alias="status"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """All tickets, optionally filtered by status (ADMIN/TECHNICIAN)."""
    return await ticket_service.list_tickets(db, principal, ticket_status)


@router.get("/{ticket_id}", response_model=TicketResponse)
async def get_ticket(
    ticket_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ticket_service.get_ticket(db, principal, ticket_id)


@router.put("/{ticket_id}/assign", response_model=TicketResponse)
async def assign_ticket(
    ticket_id: int,
    body: TicketAssign,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ticket_service.assign_ticket(
        db, principal, ticket_id, body.technician_id, body.technician_name
    )


@router.put("/{ticket_id}/status", response_model=TicketResponse)
async def update_ticket_status(
    ticket_id: int,
    body: TicketStatusUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await ticket_service.update_ticket_status(
        db, principal, ticket_id, body.status, body.resolution_notes, body.rejection_reason
    )


@router.delete("/{ticket_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_ticket(
    ticket_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    await ticket_service.delete_ticket(db, principal, ticket_id)
