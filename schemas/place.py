from typing import Optional

from pydantic import BaseModel, Field, StrictFloat


class PlaceEventDetectRequest(BaseModel):
    # Checked by the endpoint so an incomplete payload maps to 400
    user_id: Optional[int] = None
    lat: Optional[StrictFloat] = Field(default=None, ge=-90, le=90)
    lng: Optional[StrictFloat] = Field(default=None, ge=-180, le=180)


class PlaceEventDetectResponse(BaseModel):
    events_created: int
