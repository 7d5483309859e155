"""
notifications.py

알림(Notification) 조회 / 읽음 처리 / 푸시 토큰 API 모음.

주요 기능:
- 내 알림 목록 조회 (최신순, 읽지 않은 알림 수 포함)
- 읽지 않은 알림 수 조회 (앱 뱃지)
- 단일 / 전체 읽음 처리
- 관련 게시글 기준 읽음 처리 (게시글 화면 진입 시)
- FCM 토큰 등록 / 해제
- 시스템 알림 발송 (마스터 권한, 특정 회원 또는 토픽 전체)

설계 원칙:
- 모든 API 는 로그인 필요, 본인 알림만 조회 / 변경
- 읽음 처리 후에는 항상 최신 unread_count 를 함께 반환

관련 파일:
- app.services.notifications    : 읽음 상태 관리 / 토큰 등록

"""

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import (
    Page,
    get_current_master,
    get_current_user,
    get_db,
    get_page,
    get_push_client,
    get_session_factory,
)
from app.core.push import PushClient
from app.models.notification import NotificationType
from app.models.user import User
from app.schemas.notification import MarkRelatedReadRequest, SystemNotificationRequest
from app.schemas.user import PushTokenRequest
from app.services.notifications import (
    PUSH_UNAVAILABLE_WARNING,
    FanOutResult,
    NotificationMessage,
    PushDelivery,
    clear_push_token,
    count_unread,
    create_notification,
    format_notification,
    list_notifications,
    mark_all_read,
    mark_read,
    mark_related_read,
    register_push_token,
    schedule_delivery,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("")
def get_notifications(
    paging: Page = Depends(get_page),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    notifications = list_notifications(db, current_user.id, page=paging.page, page_size=paging.page_size)
    return {
        "success": True,
        "notifications": [format_notification(n) for n in notifications],
        "pagination": paging.meta(len(notifications)),
        "unread_count": count_unread(db, current_user.id),
    }


@router.get("/unread-count")
def unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return {"success": True, "count": count_unread(db, current_user.id)}


@router.patch("/read-all")
def read_all(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        updated = mark_all_read(db, current_user.id)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {
        "success": True,
        "updated_count": updated,
        "unread_count": count_unread(db, current_user.id),
    }


"""
단일 알림 읽음 처리 API

- 본인 알림이 아니거나 / 없거나 / 이미 읽은 경우 → 404

"""

@router.patch("/{notification_id}/read")
def read_one(
    notification_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        updated = mark_read(db, current_user.id, notification_id)
        if not updated:
            db.rollback()
            raise HTTPException(status_code=404, detail="Notification not found or already read")
        db.commit()
    except HTTPException:
        raise
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "unread_count": count_unread(db, current_user.id)}


"""
관련 게시글 알림 일괄 읽음 API

- type=notice    : notice / like / comment / reply 알림 중 related_id 일치
- type=testimony : testimony / like / comment / reply 알림 중 related_id 일치

"""

@router.post("/mark-related-read")
def read_related(
    data: MarkRelatedReadRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        affected = mark_related_read(db, current_user.id, data.type, data.related_id)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True, "affected_count": affected}


@router.post("/fcm-token")
def save_fcm_token(
    data: PushTokenRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        register_push_token(db, current_user, data.token)
        db.commit()
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True}


@router.delete("/fcm-token")
def delete_fcm_token(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    try:
        clear_push_token(db, current_user)
        db.commit()
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    return {"success": True}


"""
시스템 알림 발송 API (마스터 권한)

- user_id 지정 : 해당 회원에게 system 알림 행 생성 후 푸시 1건 (토큰이 유효할 때만)
  → 푸시를 쓸 수 없어도 알림 행은 남기고 warning 반환
- user_id 생략 : NOTIFICATION_TOPIC 토픽으로 푸시만 전송 (알림 행 없음)
- 푸시 전송은 응답 이후 BackgroundTasks 에서 실행

"""

@router.post("/system", status_code=status.HTTP_201_CREATED)
def send_system_notification(
    data: SystemNotificationRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    master: User = Depends(get_current_master),
    push: PushClient = Depends(get_push_client),
    session_factory=Depends(get_session_factory),
):
    message = NotificationMessage(
        type=NotificationType.SYSTEM.value,
        title=data.title,
        body=data.message,
        sender_id=master.id,
        sender_name=master.name,
    )

    if data.user_id is None:
        if not push.is_available:
            return {"success": True, "topic": settings.NOTIFICATION_TOPIC, "warning": PUSH_UNAVAILABLE_WARNING}
        background_tasks.add_task(
            push.send_to_topic,
            settings.NOTIFICATION_TOPIC,
            title=message.title,
            body=message.push_body,
            data=message.push_data(),
        )
        return {"success": True, "topic": settings.NOTIFICATION_TOPIC}

    user = db.get(User, data.user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    try:
        notification = create_notification(
            db,
            user_id=user.id,
            title=message.title,
            message=message.body,
            sender_id=master.id,
            sender_name=master.name,
        )
        db.commit()
        db.refresh(notification)
    except Exception as e:
        db.rollback()
        raise HTTPException(status_code=500, detail=f"Database error: {type(e).__name__}")

    response = {"success": True, "notification": format_notification(notification)}
    if not push.is_available:
        response["warning"] = PUSH_UNAVAILABLE_WARNING
        return response

    valid, _ = push.validate_token(user.fcm_token)
    if valid:
        delivery = PushDelivery(user_id=user.id, token=user.fcm_token, badge_count=count_unread(db, user.id))
        schedule_delivery(background_tasks, push, FanOutResult(deliveries=[delivery], created=1), message, session_factory)
    return response
