"""
Schemas for family alert fan-out.

`alert_data` stored on `family_alerts` is one of the known payload shapes;
anything else is kept as an opaque blob so older or newer writers never break
readers.
"""

from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from models.sos import FamilyAlertTypeEnum


class AlertLocation(BaseModel):
    lat: Optional[float] = None
    lng: Optional[float] = None
    accuracy: Optional[float] = None
    address: Optional[str] = None


class AlertUserProfile(BaseModel):
    first_name: Optional[str] = ""
    last_name: Optional[str] = ""
    phone: Optional[str] = None


class FamilyMemberIn(BaseModel):
    """Recipient record; `profiles` mirrors the joined profile row when present."""

    user_id: Optional[int] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    profiles: Optional[Dict[str, Any]] = None

    model_config = ConfigDict(extra="allow")

    @property
    def display_name(self) -> str:
        profile = self.profiles or {}
        first = self.first_name or profile.get("first_name") or ""
        last = self.last_name or profile.get("last_name") or ""
        return f"{first} {last}".strip()


class FamilyAlertRequest(BaseModel):
    event_id: int
    family_members: List[FamilyMemberIn] = []
    location: AlertLocation = AlertLocation()
    user_profile: AlertUserProfile = AlertUserProfile()
    alert_type: FamilyAlertTypeEnum = FamilyAlertTypeEnum.SOS_EMERGENCY
    message: Optional[str] = None

# -------- Stored payloads --------

class SOSAlertPayload(BaseModel):
    type: Literal["sos_alert"] = "sos_alert"
    event_id: int
    location: AlertLocation
    user_profile: AlertUserProfile
    timestamp: str
    message: str


class AcknowledgementAlertPayload(BaseModel):
    type: Literal["acknowledgement"] = "acknowledgement"
    event_id: int
    location: AlertLocation
    user_profile: AlertUserProfile
    timestamp: str
    message: str


class OpaqueAlertPayload(BaseModel):
    type: str = "unknown"
    data: Dict[str, Any] = {}


KnownAlertPayload = Annotated[
    Union[SOSAlertPayload, AcknowledgementAlertPayload],
    Field(discriminator="type"),
]
AlertPayload = Union[SOSAlertPayload, AcknowledgementAlertPayload, OpaqueAlertPayload]

_known_payload_adapter = TypeAdapter(KnownAlertPayload)


def parse_alert_data(data: Optional[Dict[str, Any]]) -> AlertPayload:
    """Parse a stored `alert_data` blob into its typed payload."""
    data = data or {}
    try:
        return _known_payload_adapter.validate_python(data)
    except ValidationError:
        return OpaqueAlertPayload(type=str(data.get("type") or "unknown"), data=data)


# -------- Results --------

class AlertResult(BaseModel):
    user_id: Optional[int] = None
    status: Literal["sent", "failed"]
    methods: Optional[List[str]] = None
    error: Optional[str] = None


class FamilyAlertResponse(BaseModel):
    success: bool = True
    alerts_sent: int
    total_family_members: int
    alert_results: List[AlertResult]
    event_id: int
