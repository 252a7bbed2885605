import logging

from fastapi import APIRouter, HTTPException, Depends
from pydantic import BaseModel

from .auth import UserProfile, get_current_user, to_profile
from ..dynamodb_service import DatabaseError, add_push_token
from ..validation import is_blank

logger = logging.getLogger(__name__)

router = APIRouter()


class PushTokenRequest(BaseModel):
    token: str = ""


@router.get("/me", response_model=UserProfile)
def get_profile(current_user: dict = Depends(get_current_user)):
    """
    Return the profile of the logged-in user.
    """
    return to_profile(current_user)


@router.post("/me/push-token")
def register_push_token(request: PushTokenRequest, current_user: dict = Depends(get_current_user)):
    """
    Store the device's push token against the user. Registering the same token twice is a no-op.
    """
    if is_blank(request.token):
        raise HTTPException(status_code=400, detail="Push token is required")

    token = request.token.strip()
    try:
        push_tokens = add_push_token(current_user["user_id"], token)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not register the push token")

    if push_tokens is None:
        return {"message": "Push token already registered", "push_tokens": len(current_user.get("push_tokens") or [])}

    logger.info("Registered push token for user %s", current_user["user_id"])
    return {"message": "Push token registered", "push_tokens": len(push_tokens)}
