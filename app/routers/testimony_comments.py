"""
testimony_comments.py

간증 댓글 수정 / 삭제 / 좋아요 API.

- 수정 : 작성자만
- 삭제 : 작성자 또는 마스터 권한 (최상위 댓글이면 대댓글까지 삭제)
- 좋아요 토글 → 댓글 작성자에게 "댓글 좋아요" 알림
  (알림의 related_id 는 간증 ID → 간증 화면 진입 시 함께 읽음 처리됨)

"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy import delete, or_, select
from sqlalchemy.orm import Session

from app.core.deps import (
    get_current_authorities,
    get_current_user,
    get_db,
    get_push_client,
    get_session_factory,
)
from app.core.push import PushClient
from app.models.notification import NotificationType
from app.models.testimony import TestimonyComment, TestimonyCommentLike
from app.models.user import User
from app.routers.testimonies import serialize_comment
from app.schemas.testimony import CommentUpdateRequest
from app.services.authority import ResolvedAuthoritySet
from app.services.notifications import NotificationMessage, notify_owner, schedule_delivery

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/testimony-comments", tags=["testimony-comments"])


def _get_comment_or_404(db: Session, comment_id: int) -> TestimonyComment:
    comment = db.get(TestimonyComment, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.patch("/{comment_id}")
def update_comment(
    comment_id: int,
    data: CommentUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    comment = _get_comment_or_404(db, comment_id)
    if comment.author_id != current_user.id:
        raise HTTPException(status_code=403, detail="Only the author can edit this comment")

    try:
        comment.content = data.content
        db.commit()
        db.refresh(comment)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "comment": serialize_comment(db, comment, current_user.id)}


@router.delete("/{comment_id}")
def delete_comment(
    comment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
):
    comment = _get_comment_or_404(db, comment_id)
    if comment.author_id != current_user.id and not authorities.is_master_authority():
        raise HTTPException(status_code=403, detail="Only the author or a master can delete this comment")

    target_ids = select(TestimonyComment.id).where(
        or_(TestimonyComment.id == comment.id, TestimonyComment.parent_id == comment.id)
    )

    try:
        db.execute(delete(TestimonyCommentLike).where(TestimonyCommentLike.comment_id.in_(target_ids)))
        db.execute(delete(TestimonyComment).where(TestimonyComment.parent_id == comment.id))
        db.delete(comment)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True}


@router.post("/{comment_id}/like")
def toggle_comment_like(
    comment_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: PushClient = Depends(get_push_client),
    session_factory=Depends(get_session_factory),
):
    comment = _get_comment_or_404(db, comment_id)

    like = db.scalar(
        select(TestimonyCommentLike).where(
            TestimonyCommentLike.comment_id == comment.id,
            TestimonyCommentLike.user_id == current_user.id,
        )
    )

    try:
        if like:
            db.delete(like)
            comment.like_count = max((comment.like_count or 0) - 1, 0)
            liked = False
        else:
            db.add(TestimonyCommentLike(comment_id=comment.id, user_id=current_user.id))
            comment.like_count = (comment.like_count or 0) + 1
            liked = True
        db.commit()
        db.refresh(comment)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    if liked:
        message = NotificationMessage(
            type=NotificationType.LIKE.value,
            title="댓글 좋아요",
            body=f"{current_user.name}님이 회원님의 간증 댓글에 좋아요를 눌렀습니다.",
            related_id=comment.testimony_id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            data={"testimony_id": comment.testimony_id, "comment_id": comment.id, "action": "open_testimony"},
        )
        result = notify_owner(db, push, owner_id=comment.author_id, actor_id=current_user.id, message=message)
        schedule_delivery(background_tasks, push, result, message, session_factory)

    return {"success": True, "is_liked": liked, "like_count": comment.like_count}
