from typing import Optional

from pydantic import BaseModel, Field


class CourtCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    description: Optional[str] = None
    is_indoor: bool = False
    capacity: int = Field(default=4, ge=1)
    active: bool = True


class CourtOut(BaseModel):
    id: int
    name: str
    description: Optional[str]
    is_indoor: bool
    capacity: int
    active: bool

    class Config:
        from_attributes = True
