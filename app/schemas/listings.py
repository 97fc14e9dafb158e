from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator

from app.models.listings import ResponseStatus
from app.models.skill_levels import SkillLevel
from app.schemas.users import UserSummary


class ListingCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    time_slot: Optional[str] = Field(default=None, max_length=64)
    min_skill: Optional[SkillLevel] = None
    max_skill: Optional[SkillLevel] = None

    @model_validator(mode="after")
    def check_skill_band(self):
        if self.min_skill and self.max_skill and self.min_skill > self.max_skill:
            raise ValueError("min_skill must not be above max_skill")
        return self


class RespondRequest(BaseModel):
    message: Optional[str] = Field(default=None, max_length=1000)


class ResponseStatusUpdate(BaseModel):
    status: ResponseStatus


class ResponseOut(BaseModel):
    id: int
    listing_id: int
    user_id: int
    message: Optional[str]
    status: str
    created_at: datetime

    class Config:
        from_attributes = True


class ResponseDetailOut(ResponseOut):
    user: UserSummary


class ListingOut(BaseModel):
    id: int
    user_id: int
    title: str
    description: Optional[str]
    time_slot: Optional[str]
    min_skill: Optional[str]
    max_skill: Optional[str]
    active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class BrowseListingOut(ListingOut):
    user: UserSummary
    my_response: Optional[ResponseOut] = None


class MyListingOut(ListingOut):
    response_count: int
