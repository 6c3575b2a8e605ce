"""
Comment Endpoints Module

Comments on tickets. Any workspace member can read and add comments; only the
author can delete one. Adding a comment appends a "commented" history entry.
"""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, status
from sqlmodel import Session, select
from simplifly.api import deps
from simplifly.db.session import get_db
from simplifly.models.ticket import Comment, CommentCreate, HistoryAction, TicketHistory
from simplifly.models.user import User

router = APIRouter()


@router.get("/ticket/{ticket_id}", response_model=List[Comment])
def list_comments(
    ticket_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    ticket = deps.get_accessible_ticket(db, ticket_id, current_user)
    statement = select(Comment).where(Comment.ticket_id == ticket.id).order_by(Comment.id)
    return db.exec(statement).all()


@router.post("", response_model=Comment, status_code=status.HTTP_201_CREATED)
def create_comment(
    comment_in: CommentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    ticket = deps.get_accessible_ticket(db, comment_in.ticket_id, current_user)

    comment = Comment(ticket_id=ticket.id, user_id=current_user.id, content=comment_in.content)
    db.add(comment)
    db.add(TicketHistory(
        ticket_id=ticket.id,
        user_id=current_user.id,
        action=HistoryAction.commented,
        description="Added a comment",
    ))
    db.commit()
    db.refresh(comment)
    return comment


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(deps.get_current_active_user),
):
    comment = db.get(Comment, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")

    if comment.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="You can only delete your own comments")

    db.delete(comment)
    db.commit()
    return {"message": "Comment deleted"}
