"""
Ticket comment endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_ops.api.deps import get_current_principal
from campus_ops.core.permissions import Principal
from campus_ops.db.session import get_db
from campus_ops.schemas.ticket import CommentCreate, CommentResponse, CommentUpdate
from campus_ops.services import comment_service

router = APIRouter(prefix="/comments", tags=["Comments"])


@router.post("/ticket/{ticket_id}", response_model=CommentResponse, status_code=status.HTTP_201_CREATED)
async def add_comment(
    ticket_id: int,
    body: CommentCreate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.add_comment(db, principal, ticket_id, body.content)


@router.get("/ticket/{ticket_id}", response_model=list[CommentResponse])
async def list_comments(
    ticket_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Comments on a ticket, newest first."""
    return await comment_service.list_ticket_comments(db, principal, ticket_id)


@router.put("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: int,
    body: CommentUpdate,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    return await comment_service.update_comment(db, principal, comment_id, body.content)


@router.delete("/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment(
    comment_id: int,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """Author or ADMIN only."""
    await comment_service.delete_comment(db, principal, comment_id)
