import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, Query, status

from .auth import get_current_user
from ..dynamodb_service import (
    DatabaseError,
    ItemNotFoundError,
    save_event,
    fetch_events_by_user,
    get_event_by_id,
    update_event as update_event_item,
    delete_event as delete_event_item,
    save_guest,
    delete_guest,
    fetch_guests_by_event,
    delete_guests_by_event,
)
from ..models import Event, EventDetail, EventRequest, Guest
from ..validation import is_blank, parse_iso_datetime, guest_fields_error

logger = logging.getLogger(__name__)

router = APIRouter()

REQUIRED_EVENT_FIELDS = ("description", "date", "time", "location")


@router.get("/", response_model=List[Event])
def get_user_events(
        search: Optional[str] = None,
        month: Optional[int] = Query(None, ge=1, le=12),
        current_user: dict = Depends(get_current_user),
):
    """
    Fetch all events for the logged-in user, optionally filtered by a
    description search term and by the month of the event date.
    """
    try:
        events = fetch_events_by_user(current_user["user_id"])
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Error fetching events")

    return [
        to_event(event)
        for event in events
        if matches_filters(event, search, month)
    ]


@router.post("/", status_code=status.HTTP_201_CREATED)
def create_event(request: EventRequest, current_user: dict = Depends(get_current_user)):
    """
    Creates an event & saves it in DynamoDB, together with its initial guest list.

    Args:
        request (EventRequest): The event details and optional guests.
        current_user (dict): The authenticated user, who becomes the owner.

    Returns:
        dict: A success message and the new event id.
    """
    fields = validate_event_request(request)

    guest_fields = [guest.model_dump() for guest in request.guests]
    for guest in guest_fields:
        error = guest_fields_error(guest)
        if error:
            raise_http_exception(400, error)

    event_id = str(uuid.uuid4())
    created_at = datetime.now(timezone.utc).isoformat()

    event_item = {
        "event_id": event_id,
        "created_at": created_at,
        "userId": current_user["user_id"],
        **fields,
    }

    try:
        save_event(event_item)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="There was an error creating the event. Please try again.")

    written_guest_ids = []
    try:
        for guest in guest_fields:
            guest_item = {
                "guest_id": str(uuid.uuid4()),
                "created_at": created_at,
                "eventId": event_id,
                **{name: value.strip() for name, value in guest.items()},
            }
            save_guest(guest_item)
            written_guest_ids.append(guest_item["guest_id"])
    except DatabaseError:
        rollback_event_creation(event_id, written_guest_ids)
        raise HTTPException(status_code=500, detail="There was an error creating the event. Please try again.")

    logger.info("User %s created event %s with %d guests", current_user["user_id"], event_id, len(written_guest_ids))
    return {"message": "Event created successfully.", "event_id": event_id}


@router.get("/{event_id}", response_model=EventDetail)
def get_event_details(event_id: str, current_user: dict = Depends(get_current_user)):
    """
    Fetch a single event together with its guest list.
    """
    event = get_owned_event(event_id, current_user)

    try:
        guests = fetch_guests_by_event(event_id)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not load the event details.")

    return EventDetail(
        **to_event(event).model_dump(),
        guests=[Guest(**guest) for guest in guests],
    )


@router.put("/{event_id}", response_model=Event)
def update_event(event_id: str, request: EventRequest, current_user: dict = Depends(get_current_user)):
    """
    Modify the details of an event. An event can only be saved while it has at least one guest.
    """
    fields = validate_event_request(request)
    get_owned_event(event_id, current_user)

    try:
        guests = fetch_guests_by_event(event_id)
        if not guests:
            raise_http_exception(400, "Please complete all fields and add at least one guest.")

        updated = update_event_item(event_id, fields)
    except ItemNotFoundError:
        raise_http_exception(404, "Event not found")
    except DatabaseError:
        raise HTTPException(status_code=500, detail="There was a problem updating the event.")

    logger.info("Event %s updated", event_id)
    return to_event(updated)


@router.delete("/{event_id}")
def delete_event(event_id: str, current_user: dict = Depends(get_current_user)):
    """
    Delete an event and every guest attached to it.
    """
    get_owned_event(event_id, current_user)

    try:
        removed_guests = delete_guests_by_event(event_id)
        delete_event_item(event_id)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not delete the event.")

    return {"message": "Event deleted.", "deleted_guests": removed_guests}


def get_owned_event(event_id: str, current_user: dict) -> dict:
    """
    Load an event and make sure the logged-in user is its owner.

    Raises:
        HTTPException: 404 if the event does not exist, 403 if it belongs to someone else.
    """
    try:
        event = get_event_by_id(event_id)
    except DatabaseError:
        raise HTTPException(status_code=500, detail="Could not load the event.")

    if not event:
        raise_http_exception(404, "Event not found")

    if event.get("userId") != current_user["user_id"]:
        raise_http_exception(403, "You are not authorized to access this event")

    return event


def validate_event_request(request: EventRequest) -> dict:
    """
    Check the required event fields and return the attributes to store.
    """
    if any(is_blank(getattr(request, name)) for name in REQUIRED_EVENT_FIELDS):
        raise_http_exception(400, "Please complete all fields.")

    if parse_iso_datetime(request.date) is None or parse_iso_datetime(request.time) is None:
        raise_http_exception(400, "Invalid date or time. Use ISO-8601, e.g. 2024-05-01T18:30:00.000Z")

    return {
        "description": request.description.strip(),
        "date": request.date.strip(),
        "time": request.time.strip(),
        "location": request.location.strip(),
        "observations": (request.observations or "").strip(),
    }


def matches_filters(event: dict, search: Optional[str], month: Optional[int]) -> bool:
    if search and search.lower() not in event.get("description", "").lower():
        return False

    if month is not None:
        event_date = parse_iso_datetime(event.get("date", ""))
        if event_date is None or event_date.month != month:
            return False

    return True


def rollback_event_creation(event_id: str, guest_ids: List[str]):
    """
    Remove what was written for a half-created event so no orphan guests remain.
    """
    logger.warning("Rolling back event %s and %d guests", event_id, len(guest_ids))
    try:
        for guest_id in guest_ids:
            delete_guest(guest_id)
        delete_event_item(event_id)
    except DatabaseError:
        logger.exception("Rollback of event %s failed", event_id)


def to_event(event: dict) -> Event:
    return Event(
        event_id=event["event_id"],
        description=event["description"],
        date=event["date"],
        time=event["time"],
        location=event["location"],
        observations=event.get("observations") or "",
        userId=event["userId"],
    )


def raise_http_exception(status_code: int, detail: str):
    """
    Helper function to raise HTTPException.
    """
    raise HTTPException(status_code=status_code, detail=detail)
