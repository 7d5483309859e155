"""
testimonies.py

간증(Testimony) API 모음.

주요 기능:
- 간증 목록 조회 (카테고리 필터, 최신순)
- HOT 간증 조회 (최근 7일, 좋아요 10개 이상)
- 간증 작성 → 전체 사용자 알림 + 푸시
- 간증 상세 / 수정 / 삭제
- 좋아요 토글 → 작성자에게 알림
- 댓글 목록 (한 단계 대댓글 포함) / 댓글 작성 → 작성자에게 알림

설계 원칙:
- 간증 저장은 알림보다 먼저 commit
- 대댓글에는 다시 답글을 달 수 없음 (한 단계만 허용)
- 본인 행동에 대한 알림은 만들지 않음

관련 파일:
- app.services.notifications    : 알림 fan-out / 푸시 전송 예약
- app.routers.testimony_comments : 댓글 수정 / 삭제 / 좋아요

"""

import logging
from datetime import timedelta

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
from app.db.base import utcnow
from app.models.notification import NotificationType
from app.models.testimony import (
    Testimony,
    TestimonyCategory,
    TestimonyComment,
    TestimonyCommentLike,
    TestimonyImage,
    TestimonyLike,
)
from app.models.user import User
from app.schemas.testimony import CommentCreateRequest, TestimonyCreateRequest, TestimonyUpdateRequest
from app.services.authority import ResolvedAuthoritySet
from app.services.notifications import (
    NotificationMessage,
    broadcast,
    notify_owner,
    schedule_delivery,
)
from app.services.patch import apply_patch

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/testimonies", tags=["testimonies"])

HOT_LIKE_THRESHOLD = 10
HOT_WINDOW_DAYS = 7


def _iso(value):
    return value.isoformat() if value else None


def serialize_comment(db: Session, comment: TestimonyComment, viewer_id: int | None) -> dict:
    author = db.get(User, comment.author_id)
    is_liked = False
    if viewer_id is not None:
        is_liked = db.scalar(
            select(TestimonyCommentLike.id).where(
                TestimonyCommentLike.comment_id == comment.id,
                TestimonyCommentLike.user_id == viewer_id,
            )
        ) is not None
    return {
        "id": comment.id,
        "testimony_id": comment.testimony_id,
        "content": comment.content,
        "parent_id": comment.parent_id,
        "author_id": comment.author_id,
        "author_name": author.name if author else None,
        "like_count": comment.like_count,
        "is_liked": is_liked,
        "created_at": _iso(comment.created_at),
        "updated_at": _iso(comment.updated_at),
    }


def _serialize_testimony(db: Session, testimony: Testimony, viewer_id: int | None, *, preview: bool = False) -> dict:
    author = db.get(User, testimony.author_id)
    image_urls = db.scalars(
        select(TestimonyImage.image_url)
        .where(TestimonyImage.testimony_id == testimony.id)
        .order_by(TestimonyImage.id)
    ).all()
    comment_count = db.scalar(
        select(func.count(TestimonyComment.id)).where(TestimonyComment.testimony_id == testimony.id)
    ) or 0
    is_liked = False
    if viewer_id is not None:
        is_liked = db.scalar(
            select(TestimonyLike.id).where(
                TestimonyLike.testimony_id == testimony.id,
                TestimonyLike.user_id == viewer_id,
            )
        ) is not None

    return {
        "id": testimony.id,
        "category": testimony.category,
        "content": testimony.content[:200] if preview else testimony.content,
        "created_at": _iso(testimony.created_at),
        "updated_at": _iso(testimony.updated_at),
        "view_count": testimony.view_count,
        "like_count": testimony.like_count,
        "comment_count": comment_count,
        "author_id": testimony.author_id,
        "author_name": author.name if author else None,
        "is_liked": is_liked,
        "is_hot": testimony.like_count >= HOT_LIKE_THRESHOLD,
        "image_urls": list(image_urls),
    }


def _get_testimony_or_404(db: Session, testimony_id: int) -> Testimony:
    testimony = db.get(Testimony, testimony_id)
    if not testimony:
        raise HTTPException(status_code=404, detail="Testimony not found")
    return testimony


def _ensure_can_edit(testimony: Testimony, user: User, authorities: ResolvedAuthoritySet) -> None:
    if testimony.author_id != user.id and not authorities.is_master_authority():
        raise HTTPException(status_code=403, detail="Only the author or a master can modify this testimony")


@router.get("")
def list_testimonies(
    category: TestimonyCategory | None = None,
    paging: Page = Depends(get_page),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    stmt = select(Testimony)
    if category:
        stmt = stmt.where(Testimony.category == category.value)

    testimonies = db.scalars(
        stmt.order_by(Testimony.created_at.desc(), Testimony.id.desc())
        .offset(paging.offset)
        .limit(paging.page_size)
    ).all()

    viewer_id = viewer.id if viewer else None
    return {
        "success": True,
        "testimonies": [_serialize_testimony(db, t, viewer_id, preview=True) for t in testimonies],
        "pagination": paging.meta(len(testimonies)),
    }


@router.get("/hot")
def hot_testimonies(
    paging: Page = Depends(get_page),
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    since = utcnow() - timedelta(days=HOT_WINDOW_DAYS)
    testimonies = db.scalars(
        select(Testimony)
        .where(Testimony.like_count >= HOT_LIKE_THRESHOLD, Testimony.created_at >= since)
        .order_by(Testimony.like_count.desc(), Testimony.created_at.desc())
        .offset(paging.offset)
        .limit(paging.page_size)
    ).all()

    viewer_id = viewer.id if viewer else None
    return {
        "success": True,
        "testimonies": [_serialize_testimony(db, t, viewer_id, preview=True) for t in testimonies],
        "pagination": paging.meta(len(testimonies)),
    }


"""
간증 작성 API

- 간증 + 이미지 URL 저장 후 commit
- FCM 토큰이 있는 모든 사용자에게 알림 생성 (작성자 포함)
- 푸시 서비스를 쓸 수 없으면 warning 포함

"""

@router.post("", status_code=status.HTTP_201_CREATED)
def create_testimony(
    data: TestimonyCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: PushClient = Depends(get_push_client),
    session_factory=Depends(get_session_factory),
):
    try:
        testimony = Testimony(
            category=data.category.value,
            content=data.content,
            author_id=current_user.id,
        )
        db.add(testimony)
        db.flush()
        for url in data.image_urls:
            db.add(TestimonyImage(testimony_id=testimony.id, image_url=url))
        db.commit()
        db.refresh(testimony)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    message = NotificationMessage(
        type=NotificationType.TESTIMONY.value,
        title="새로운 간증이 도착했어요",
        body=testimony.content,
        related_id=testimony.id,
        sender_id=current_user.id,
        sender_name=current_user.name,
        data={
            "testimony_id": testimony.id,
            "action": "open_testimony",
            "author_name": current_user.name,
        },
    )
    result = broadcast(db, push, message)
    schedule_delivery(background_tasks, push, result, message, session_factory)

    response = {"success": True, "testimony": _serialize_testimony(db, testimony, current_user.id)}
    if result.warning:
        response["warning"] = result.warning
    return response


@router.get("/{testimony_id}")
def get_testimony(
    testimony_id: int,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    testimony = _get_testimony_or_404(db, testimony_id)

    try:
        testimony.view_count = (testimony.view_count or 0) + 1
        db.commit()
        db.refresh(testimony)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "testimony": _serialize_testimony(db, testimony, viewer.id if viewer else None)}


@router.patch("/{testimony_id}")
def update_testimony(
    testimony_id: int,
    data: TestimonyUpdateRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
):
    testimony = _get_testimony_or_404(db, testimony_id)
    _ensure_can_edit(testimony, current_user, authorities)

    for name in ("category", "content"):
        if name in data.model_fields_set and getattr(data, name) is None:
            raise HTTPException(status_code=400, detail=f"{name} cannot be null")

    try:
        changed = apply_patch(testimony, data, exclude={"image_urls"})
        if data.image_urls is not None:
            db.execute(delete(TestimonyImage).where(TestimonyImage.testimony_id == testimony.id))
            for url in data.image_urls:
                db.add(TestimonyImage(testimony_id=testimony.id, image_url=url))
            changed.append("image_urls")
        db.commit()
        db.refresh(testimony)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {
        "success": True,
        "updated_fields": changed,
        "testimony": _serialize_testimony(db, testimony, current_user.id),
    }


"""
간증 삭제 API

- 이미지 / 좋아요 / 댓글 좋아요 / 대댓글 / 댓글 / 간증 순서로 한 트랜잭션에서 삭제

"""

@router.delete("/{testimony_id}")
def delete_testimony(
    testimony_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    authorities: ResolvedAuthoritySet = Depends(get_current_authorities),
):
    testimony = _get_testimony_or_404(db, testimony_id)
    _ensure_can_edit(testimony, current_user, authorities)

    comment_ids = select(TestimonyComment.id).where(TestimonyComment.testimony_id == testimony.id)

    try:
        db.execute(delete(TestimonyImage).where(TestimonyImage.testimony_id == testimony.id))
        db.execute(delete(TestimonyLike).where(TestimonyLike.testimony_id == testimony.id))
        db.execute(delete(TestimonyCommentLike).where(TestimonyCommentLike.comment_id.in_(comment_ids)))
        db.execute(delete(TestimonyComment).where(
            TestimonyComment.testimony_id == testimony.id,
            TestimonyComment.parent_id.is_not(None),
        ))
        db.execute(delete(TestimonyComment).where(TestimonyComment.testimony_id == testimony.id))
        db.delete(testimony)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    logger.info("Testimony %s deleted by %s", testimony_id, current_user.id)
    return {"success": True}


@router.post("/{testimony_id}/like")
def toggle_like(
    testimony_id: int,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: PushClient = Depends(get_push_client),
    session_factory=Depends(get_session_factory),
):
    testimony = _get_testimony_or_404(db, testimony_id)

    like = db.scalar(
        select(TestimonyLike).where(
            TestimonyLike.testimony_id == testimony.id,
            TestimonyLike.user_id == current_user.id,
        )
    )

    try:
        if like:
            db.delete(like)
            testimony.like_count = max((testimony.like_count or 0) - 1, 0)
            liked = False
        else:
            db.add(TestimonyLike(testimony_id=testimony.id, user_id=current_user.id))
            testimony.like_count = (testimony.like_count or 0) + 1
            liked = True
        db.commit()
        db.refresh(testimony)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    if liked:
        message = NotificationMessage(
            type=NotificationType.LIKE.value,
            title="좋아요",
            body=f"{current_user.name}님이 회원님의 간증을 좋아합니다.",
            related_id=testimony.id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            data={"testimony_id": testimony.id, "action": "open_testimony"},
        )
        result = notify_owner(db, push, owner_id=testimony.author_id, actor_id=current_user.id, message=message)
        schedule_delivery(background_tasks, push, result, message, session_factory)

    return {"success": True, "is_liked": liked, "like_count": testimony.like_count}


"""
댓글 목록 API

- 최상위 댓글은 작성순
- 각 최상위 댓글 아래 replies 로 대댓글을 작성순으로 포함

"""

@router.get("/{testimony_id}/comments")
def list_comments(
    testimony_id: int,
    db: Session = Depends(get_db),
    viewer: User | None = Depends(get_optional_user),
):
    _get_testimony_or_404(db, testimony_id)

    comments = db.scalars(
        select(TestimonyComment)
        .where(TestimonyComment.testimony_id == testimony_id)
        .order_by(TestimonyComment.created_at.asc(), TestimonyComment.id.asc())
    ).all()

    viewer_id = viewer.id if viewer else None
    parents: list[dict] = []
    replies: dict[int, list[dict]] = {}
    for comment in comments:
        item = serialize_comment(db, comment, viewer_id)
        if comment.parent_id is None:
            item["replies"] = replies.setdefault(comment.id, [])
            parents.append(item)
        else:
            replies.setdefault(comment.parent_id, []).append(item)

    return {"success": True, "comments": parents}


"""
댓글 작성 API

- parent_id 가 있으면 대댓글 (같은 간증의 최상위 댓글에만 가능)
- 댓글   → 간증 작성자에게 "새 댓글" 알림
- 대댓글 → 부모 댓글 작성자에게 "새 답글" 알림

"""

@router.post("/{testimony_id}/comments", status_code=status.HTTP_201_CREATED)
def create_comment(
    testimony_id: int,
    data: CommentCreateRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
    push: PushClient = Depends(get_push_client),
    session_factory=Depends(get_session_factory),
):
    testimony = _get_testimony_or_404(db, testimony_id)

    parent = None
    if data.parent_id is not None:
        parent = db.scalar(
            select(TestimonyComment).where(
                TestimonyComment.id == data.parent_id,
                TestimonyComment.testimony_id == testimony.id,
            )
        )
        if not parent:
            raise HTTPException(status_code=404, detail="Parent comment not found")
        if parent.parent_id is not None:
            raise HTTPException(status_code=400, detail="Cannot reply to a reply")

    try:
        comment = TestimonyComment(
            testimony_id=testimony.id,
            author_id=current_user.id,
            parent_id=parent.id if parent else None,
            content=data.content,
        )
        db.add(comment)
        db.commit()
        db.refresh(comment)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    if parent:
        owner_id = parent.author_id
        message = NotificationMessage(
            type=NotificationType.REPLY.value,
            title="새 답글",
            body=f"{current_user.name}님이 회원님의 댓글에 답글을 남겼습니다: {data.content}",
            related_id=testimony.id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            data={"testimony_id": testimony.id, "comment_id": comment.id, "action": "open_testimony"},
        )
    else:
        owner_id = testimony.author_id
        message = NotificationMessage(
            type=NotificationType.COMMENT.value,
            title="새 댓글",
            body=f"{current_user.name}님이 회원님의 간증에 댓글을 남겼습니다: {data.content}",
            related_id=testimony.id,
            sender_id=current_user.id,
            sender_name=current_user.name,
            data={"testimony_id": testimony.id, "comment_id": comment.id, "action": "open_testimony"},
        )

    result = notify_owner(db, push, owner_id=owner_id, actor_id=current_user.id, message=message)
    schedule_delivery(background_tasks, push, result, message, session_factory)

    return {"success": True, "comment": serialize_comment(db, comment, current_user.id)}
