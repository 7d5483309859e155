"""
notices.py

공지사항(Notice) API 모음.

주요 기능:
- 공지사항 목록 조회 (고정 공지 우선, 최신순)
- 공지사항 작성 → 전체 사용자 알림 + 푸시
- 공지사항 상세 조회 (조회수 증가)
- 공지사항 수정 / 삭제 (작성자 또는 마스터 권한)
- 좋아요 토글 → 작성자에게 알림
- 댓글 목록 / 댓글 작성 → 공지 작성자에게 알림

설계 원칙:
- 공지사항 저장은 알림보다 먼저 commit
  → 알림 / 푸시 실패가 공지사항 생성을 되돌리지 않음
- 푸시 서비스를 쓸 수 없으면 응답에 warning 을 포함
- 수정 / 삭제는 한 트랜잭션 안에서 이미지 / 좋아요 / 댓글까지 처리

관련 파일:
- app.services.notifications    : 알림 fan-out / 푸시 전송 예약
- app.models.notice             : Notice / NoticeImage / NoticeLike / NoticeComment
- app.routers.comments          : 공지 댓글 수정 / 삭제 / 좋아요

"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from app.core.deps import (
    Page,
    get_current_authorities,
    get_current_user,
    get_db,
    get_optional_user,
    get_page,
    get_push_client,
    get_session_factory,
)
from app.core.push import PushClient
from app.models.notice import Notice, NoticeComment, NoticeCommentLike, NoticeImage, NoticeLike
from app.models.notification import NotificationType
from app.models.user import User
from app.schemas.notice import NoticeCommentRequest, NoticeCreateRequest, NoticeUpdateRequest
from app.services.authority import ResolvedAuthoritySet
from app.services.notifications import (
    NotificationMessage,
    broadcast,
    notify_owner,
    schedule_delivery,
)
from app.services.patch import apply_patch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notices", tags=["notices"])


def serialize_notice_comment(db: Session, comment: NoticeComment, viewer_id: int | None) -> dict:
    author = db.get(User, comment.author_id)
    is_liked = False
    if viewer_id is not None:
        is_liked = db.scalar(
            select(NoticeCommentLike.id).where(
                NoticeCommentLike.comment_id == comment.id,
                NoticeCommentLike.user_id == viewer_id,
            )
        ) is not None
    return {
        "id": comment.id,
        "notice_id": comment.notice_id,
        "content": comment.content,
        "author_id": comment.author_id,
        "author_name": author.name if author else None,
        "like_count": comment.like_count,
        "is_liked": is_liked,
        "created_at": comment.created_at.isoformat() if comment.created_at else None,
        "updated_at": comment.updated_at.isoformat() if comment.updated_at else None,
    }


def _serialize_notice(db: Session, notice: Notice, viewer_id: int | None, *, preview: bool = False) -> dict:
    author = db.get(User, notice.author_id)
    image_urls = db.scalars(
        select(NoticeImage.image_url).where(NoticeImage.notice_id == notice.id).order_by(NoticeImage.id)
    ).all()
    is_liked = False
    if viewer_id is not None:
        is_liked = db.scalar(
            select(NoticeLike.id).where(NoticeLike.notice_id == notice.id, NoticeLike.user_id == viewer_id)
        ) is not None
    comment_count = db.scalar(
        select(func.count(NoticeComment.id)).where(NoticeComment.notice_id == notice.id)
    ) or 0

    return {
        "id": notice.id,
        "title": notice.title,
        "content": notice.content[:200] if preview else notice.content,
        "created_at": notice.created_at.isoformat() if notice.created_at else None,
        "updated_at": notice.updated_at.isoformat() if notice.updated_at else None,
        "view_count": notice.view_count,
        "like_count": notice.like_count,
        "comment_count": comment_count,
        "author_id": notice.author_id,
        "author_name": author.name if author else None,
        "is_pinned": bool(notice.is_pinned),
        "is_liked": is_liked,
        "image_urls": list(image_urls),
    }


def _get_notice_or_404(db: Session, notice_id: int) -> Notice:
    notice = db.get(Notice, notice_id)
    if not notice:
        raise HTTPException(status_code=404, detail="Notice not found")
    return notice


def _ensure_can_edit(notice: Notice, user: User, authorities: ResolvedAuthoritySet) -> None:
    if notice.author_id != user.id and not authorities.is_master_authority():
        raise HTTPException(status_code=403, detail="Only the author or a master can modify this notice")


@router.get("")
def list_notices(
    paging: Page = Depends(get_page),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    notices = db.scalars(
        select(Notice)
        .order_by(Notice.is_pinned.desc(), Notice.created_at.desc(), Notice.id.desc())
        .offset(paging.offset)
        .limit(paging.page_size)
    ).all()

    viewer_id = viewer.id if viewer else None
    return {
        "success": True,
        "notices": [_serialize_notice(db, n, viewer_id, preview=True) for n in notices],
        "pagination": paging.meta(len(notices)),
    }


"""
공지사항 작성 API

- 공지사항 + 이미지 URL 저장 후 commit
- 이후 FCM 토큰이 있는 모든 사용자에게 알림 생성 (작성자 포함)
- 푸시 전송은 응답 이후 BackgroundTasks 에서 실행

"""

@router.post("", status_code=status.HTTP_201_CREATED)
def create_notice(
    data: NoticeCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: PushClient = Depends(get_push_client),
    session_factory=Depends(get_session_factory),
):
    try:
        notice = Notice(
            title=data.title,
            content=data.content,
            author_id=current_user.id,
            is_pinned=data.is_pinned,
        )
        db.add(notice)
        db.flush()
        for url in data.image_urls:
            db.add(NoticeImage(notice_id=notice.id, image_url=url))
        db.commit()
        db.refresh(notice)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    message = NotificationMessage(
        type=NotificationType.NOTICE.value,
        title="새 공지사항",
        body=notice.title,
        related_id=notice.id,
        sender_id=current_user.id,
        sender_name=current_user.name,
        data={"notice_id": notice.id, "action": "open_notice"},
    )
    result = broadcast(db, push, message)
    schedule_delivery(background_tasks, push, result, message, session_factory)

    response = {"success": True, "notice": _serialize_notice(db, notice, current_user.id)}
    if result.warning:
        response["warning"] = result.warning
    return response


@router.get("/{notice_id}")
def get_notice(
    notice_id: int,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    notice = _get_notice_or_404(db, notice_id)

    try:
        notice.view_count = (notice.view_count or 0) + 1
        db.commit()
        db.refresh(notice)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "notice": _serialize_notice(db, notice, viewer.id if viewer else None)}


@router.patch("/{notice_id}")
def update_notice(
    notice_id: int,
    data: NoticeUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
):
    notice = _get_notice_or_404(db, notice_id)
    _ensure_can_edit(notice, current_user, authorities)

    for name in ("title", "content", "is_pinned"):
        if name in data.model_fields_set and getattr(data, name) is None:
            raise HTTPException(status_code=400, detail=f"{name} cannot be null")

    try:
        changed = apply_patch(notice, data, exclude={"image_urls"})
        if data.image_urls is not None:
            db.execute(delete(NoticeImage).where(NoticeImage.notice_id == notice.id))
            for url in data.image_urls:
                db.add(NoticeImage(notice_id=notice.id, image_url=url))
            changed.append("image_urls")
        db.commit()
        db.refresh(notice)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {
        "success": True,
        "updated_fields": changed,
        "notice": _serialize_notice(db, notice, current_user.id),
    }


@router.delete("/{notice_id}")
def delete_notice(
    notice_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
):
    notice = _get_notice_or_404(db, notice_id)
    _ensure_can_edit(notice, current_user, authorities)

    try:
        db.execute(delete(NoticeImage).where(NoticeImage.notice_id == notice.id))
        db.execute(delete(NoticeLike).where(NoticeLike.notice_id == notice.id))
        comment_ids = select(NoticeComment.id).where(NoticeComment.notice_id == notice.id)
        db.execute(delete(NoticeCommentLike).where(NoticeCommentLike.comment_id.in_(comment_ids)))
        db.execute(delete(NoticeComment).where(NoticeComment.notice_id == notice.id))
        db.delete(notice)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("Notice %s deleted by %s", notice_id, current_user.id)
    return {"success": True}


"""
공지사항 좋아요 토글 API

- 이미 눌렀으면 취소, 아니면 추가
- 추가한 경우에만 작성자에게 알림 (본인 글이면 알림 없음)

"""

@router.post("/{notice_id}/like")
def toggle_like(
    notice_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: PushClient = Depends(get_push_client),
    session_factory=Depends(get_session_factory),
):
    notice = _get_notice_or_404(db, notice_id)

    like = db.scalar(
        select(NoticeLike).where(NoticeLike.notice_id == notice.id, NoticeLike.user_id == current_user.id)
    )

    try:
        if like:
            db.delete(like)
            notice.like_count = max((notice.like_count or 0) - 1, 0)
            liked = False
        else:
            db.add(NoticeLike(notice_id=notice.id, user_id=current_user.id))
            notice.like_count = (notice.like_count or 0) + 1
            liked = True
        db.commit()
        db.refresh(notice)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    if liked:
        message = NotificationMessage(
            type=NotificationType.LIKE.value,
            title="좋아요",
            body=f"{current_user.name}님이 회원님의 공지사항을 좋아합니다.",
            related_id=notice.id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            data={"notice_id": notice.id, "action": "open_notice"},
        )
        result = notify_owner(db, push, owner_id=notice.author_id, actor_id=current_user.id, message=message)
        schedule_delivery(background_tasks, push, result, message, session_factory)

    return {"success": True, "is_liked": liked, "like_count": notice.like_count}


@router.get("/{notice_id}/comments")
def list_notice_comments(
    notice_id: int,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    _get_notice_or_404(db, notice_id)

    comments = db.scalars(
        select(NoticeComment)
        .where(NoticeComment.notice_id == notice_id)
        .order_by(NoticeComment.created_at.asc(), NoticeComment.id.asc())
    ).all()

    viewer_id = viewer.id if viewer else None
    return {"success": True, "comments": [serialize_notice_comment(db, c, viewer_id) for c in comments]}


"""
공지사항 댓글 작성 API

- 댓글 저장 후 공지 작성자에게 "새 댓글" 알림 (본인 공지면 알림 없음)

"""

@router.post("/{notice_id}/comments", status_code=status.HTTP_201_CREATED)
def create_notice_comment(
    notice_id: int,
    data: NoticeCommentRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: PushClient = Depends(get_push_client),
    session_factory=Depends(get_session_factory),
):
    notice = _get_notice_or_404(db, notice_id)

    try:
        comment = NoticeComment(notice_id=notice.id, author_id=current_user.id, content=data.content)
        db.add(comment)
        db.commit()
        db.refresh(comment)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    message = NotificationMessage(
        type=NotificationType.COMMENT.value,
        title="새 댓글",
        body=f"{current_user.name}님이 회원님의 공지사항에 댓글을 남겼습니다: {data.content}",
        related_id=notice.id,
        sender_id=current_user.id,
        sender_name=current_user.name,
        data={"notice_id": notice.id, "comment_id": comment.id, "action": "open_notice"},
    )
    result = notify_owner(db, push, owner_id=notice.author_id, actor_id=current_user.id, message=message)
    schedule_delivery(background_tasks, push, result, message, session_factory)

    return {"success": True, "comment": serialize_notice_comment(db, comment, current_user.id)}
