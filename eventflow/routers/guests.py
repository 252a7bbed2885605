import logging
import uuid
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, HTTPException, Depends, status

from .auth import get_current_user
from .events import get_owned_event, raise_http_exception
from ..dynamodb_service import (
    DatabaseError,
    ItemNotFoundError,
    fetch_guests_by_event,
    get_guest_by_id,
    save_guest,
    update_guest as update_guest_item,
    delete_guest as delete_guest_item,
)
from ..models import Guest, GuestRequest, GuestUpdateRequest
from ..validation import guest_fields_error

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/event/{event_id}", response_model=List[Guest])
def get_event_guests(event_id: str, current_user: dict = Depends(get_current_user)):
    """ Fetch the guest list of one of the user's events. """
    get_owned_event(event_id, current_user)

    try:
        guests = fetch_guests_by_event(event_id)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not load the guests.")

    return [Guest(**guest) for guest in guests]


@router.post("/event/{event_id}", response_model=Guest, status_code=status.HTTP_201_CREATED)
def add_guest_to_event(event_id: str, guest: GuestRequest, current_user: dict = Depends(get_current_user)):
    """
    Adds a guest to the event's guest list in the database.

    Args:
        event_id (str): The unique identifier for the event.
        guest (GuestRequest): The guest details (nombre, edad, sexo, telefono).

    Returns:
        Guest: The stored guest.
    """
    fields = guest.model_dump()
    error = guest_fields_error(fields)
    if error:
        raise_http_exception(400, error)

    get_owned_event(event_id, current_user)

    guest_item = {
        "guest_id": str(uuid.uuid4()),
        "created_at": datetime.now(timezone.utc).isoformat(),
        "eventId": event_id,
        **{name: value.strip() for name, value in fields.items()},
    }

    try:
        save_guest(guest_item)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not add the guest.")

    return Guest(**guest_item)


@router.put("/{guest_id}", response_model=Guest)
def update_guest(guest_id: str, request: GuestUpdateRequest, current_user: dict = Depends(get_current_user)):
    """ Update the details of a guest. Only the fields sent are changed. """
    fields = request.model_dump(exclude_none=True)
    if not fields:
        raise_http_exception(400, "Nothing to update.")

    error = guest_fields_error(fields)
    if error:
        raise_http_exception(400, error)

    get_owned_guest(guest_id, current_user)

    try:
        updated = update_guest_item(guest_id, {name: value.strip() for name, value in fields.items()})
    except ItemNotFoundError:
        raise_http_exception(404, "Guest not found")
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not update the guest.")

    logger.info("Guest %s updated", guest_id)
    return Guest(**updated)


@router.delete("/{guest_id}")
def delete_guest(guest_id: str, current_user: dict = Depends(get_current_user)):
    get_owned_guest(guest_id, current_user)

    try:
        delete_guest_item(guest_id)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not delete the guest.")

    return {"message": "Guest deleted."}


def get_owned_guest(guest_id: str, current_user: dict) -> dict:
    """
    Load a guest and check that its event belongs to the logged-in user.
    """
    try:
        guest = get_guest_by_id(guest_id)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not load the guest.")

    if not guest:
        raise_http_exception(404, "Guest not found")

    get_owned_event(guest["eventId"], current_user)
    return guest
