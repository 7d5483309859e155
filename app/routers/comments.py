"""
comments.py

공지사항 댓글 수정 / 삭제 / 좋아요 API.

- 수정 : 작성자만
- 삭제 : 작성자 또는 마스터 권한 (댓글 좋아요까지 함께 삭제)
- 좋아요 토글 → 댓글 작성자에게 "댓글 좋아요" 알림
  (related_id 는 공지사항 ID)

"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from app.core.deps import (
    get_current_authorities,
    get_current_user,
    get_db,
    get_push_client,
    get_session_factory,
)
from app.core.push import PushClient
from app.models.notice import NoticeComment, NoticeCommentLike
from app.models.notification import NotificationType
from app.models.user import User
from app.routers.notices import serialize_notice_comment
from app.schemas.notice import NoticeCommentRequest
from app.services.authority import ResolvedAuthoritySet
from app.services.notifications import NotificationMessage, notify_owner, schedule_delivery

router = APIRouter(prefix="/comments", tags=["comments"])


def _get_comment_or_404(db: Session, comment_id: int) -> NoticeComment:
    comment = db.get(NoticeComment, comment_id)
    if not comment:
        raise HTTPException(status_code=404, detail="Comment not found")
    return comment


@router.patch("/{comment_id}")
def update_comment(
    comment_id: int,
    data: NoticeCommentRequest,
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

    return {"success": True, "comment": serialize_notice_comment(db, comment, current_user.id)}


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

    try:
        db.execute(delete(NoticeCommentLike).where(NoticeCommentLike.comment_id == comment.id))
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
        select(NoticeCommentLike).where(
            NoticeCommentLike.comment_id == comment.id,
            NoticeCommentLike.user_id == current_user.id,
        )
    )

    try:
        if like:
            db.delete(like)
            comment.like_count = max((comment.like_count or 0) - 1, 0)
            liked = False
        else:
            db.add(NoticeCommentLike(comment_id=comment.id, user_id=current_user.id))
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
            body=f"{current_user.name}님이 회원님의 공지사항 댓글에 좋아요를 눌렀습니다.",
            related_id=comment.notice_id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            data={"notice_id": comment.notice_id, "comment_id": comment.id, "action": "open_notice"},
        )
        result = notify_owner(db, push, owner_id=comment.author_id, actor_id=current_user.id, message=message)
        schedule_delivery(background_tasks, push, result, message, session_factory)

    return {"success": True, "is_liked": liked, "like_count": comment.like_count}
