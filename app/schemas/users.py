from typing import Optional

from pydantic import BaseModel, Field

from app.models.skill_levels import SkillLevel


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=120)
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(min_length=6)
    skill_level: SkillLevel = SkillLevel.BEGINNER_2_0


class UserOut(BaseModel):
    id: int
    name: str
    email: str
    skill_level: str
    role: str

    class Config:
        from_attributes = True


class UserSummary(BaseModel):
    id: int
    name: str
    skill_level: str

    class Config:
        from_attributes = True


class LoginRequest(BaseModel):
    email: str
    password: str


class TokenOut(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserOut


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=120)
    skill_level: Optional[SkillLevel] = None
