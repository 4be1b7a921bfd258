from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from models.sos import EmergencyTypeEnum, TriggerSourceEnum

# -------- SOS events --------

class SOSEventCreate(BaseModel):
    # user_id is validated by the endpoint so a missing value maps to 400
    user_id: Optional[int] = None
    lat: Optional[float] = Field(default=None, ge=-90, le=90)
    lng: Optional[float] = Field(default=None, ge=-180, le=180)
    address: Optional[str] = None
    emergency_type: EmergencyTypeEnum = EmergencyTypeEnum.GENERAL
    source: TriggerSourceEnum = TriggerSourceEnum.APP


class SOSEventRead(BaseModel):
    id: int
    user_id: int
    group_id: Optional[int] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: Optional[str] = None
    emergency_type: str
    source: str
    status: str
    created_at: Optional[datetime] = None
    resolved_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SOSEventCreateResponse(BaseModel):
    success: bool = True
    event: SOSEventRead
    connections_notified: int
    regional_created: bool
    access_granted: int


class SOSEventResponse(BaseModel):
    success: bool = True
    event: SOSEventRead

# -------- Locations --------

class SOSLocationCreate(BaseModel):
    lat: float = Field(ge=-90, le=90)
    lng: float = Field(ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)
    address: Optional[str] = None


class SOSLocationRead(SOSLocationCreate):
    id: int
    event_id: int
    recorded_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class SOSLocationResponse(BaseModel):
    success: bool = True
    location: SOSLocationRead

# -------- Acknowledgements --------

class AcknowledgeRequest(BaseModel):
    event_id: int
    message: Optional[str] = Field(default=None, max_length=500)


class AcknowledgementRead(BaseModel):
    id: int
    event_id: int
    family_user_id: int
    message: str
    acknowledged_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class AcknowledgeResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    acknowledgement: AcknowledgementRead
    call_sequence_paused: bool


class AcknowledgementListResponse(BaseModel):
    success: bool = True
    acknowledgements: List[AcknowledgementRead]
