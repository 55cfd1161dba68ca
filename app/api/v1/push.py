"""
Web Push endpoint API: device registration and test notification.
"""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from pydantic import BaseModel

from app.api.deps import get_db, get_current_user_id
from app.application import push_service

router = APIRouter(prefix="/api/push", tags=["push"])


class PushKeys(BaseModel):
    p256dh: str
    auth: str


class SubscribeRequest(BaseModel):
    endpoint: str
    keys: PushKeys


class UnsubscribeRequest(BaseModel):
    endpoint: str


@router.post("/subscribe")
def subscribe(
    body: SubscribeRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    push_service.register_endpoint(db, user_id, body.endpoint, body.keys.p256dh, body.keys.auth)
    return {"success": True}


@router.delete("/unsubscribe")
def unsubscribe(
    body: UnsubscribeRequest,
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    deleted = push_service.remove_endpoint(db, user_id, body.endpoint)
    return {"success": True, "deleted": deleted}


@router.post("/test")
def test_push(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    """Send a test push to verify the setup."""
    try:
        result = push_service.send_test_notification(db, user_id)
    except push_service.UserNotFoundError:
        raise HTTPException(status_code=404, detail="User not found")
    except push_service.NoEndpointsError:
        raise HTTPException(
            status_code=400,
            detail="User has no push endpoints. Grant notification permission first.",
        )
    return {
        "success": result.success,
        "sent": result.sent,
        "failed": result.failed,
    }
