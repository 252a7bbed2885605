from typing import List, Optional

from pydantic import BaseModel


# Request Model for a guest, fields are validated by the routers so that
# blank values produce a readable 400 instead of a schema error
class GuestRequest(BaseModel):
    nombre: str = ""
    edad: str = ""
    sexo: str = ""
    telefono: str = ""


# Partial update, only the fields that are sent are changed
class GuestUpdateRequest(BaseModel):
    nombre: Optional[str] = None
    edad: Optional[str] = None
    sexo: Optional[str] = None
    telefono: Optional[str] = None


class Guest(BaseModel):
    guest_id: str
    nombre: str
    edad: str
    sexo: str
    telefono: str
    eventId: str


# Request Model for Event creation and modification
class EventRequest(BaseModel):
    description: str = ""
    date: str = ""  # ISO-8601, as sent by the app
    time: str = ""  # ISO-8601, only the time part is meaningful
    location: str = ""
    observations: Optional[str] = ""
    guests: List[GuestRequest] = []


class Event(BaseModel):
    event_id: str
    description: str
    date: str
    time: str
    location: str
    observations: str = ""
    userId: str


# Full Event Model, with its guest list
class EventDetail(Event):
    guests: List[Guest] = []
