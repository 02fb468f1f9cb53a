"""Response models shared by several routers."""

from datetime import datetime

from pydantic import BaseModel

from askmate.core.votes import VoteType


class UserSummary(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


class UserResponse(UserSummary):
    role: str
    created_at: datetime | None = None


class FileMetadataResponse(BaseModel):
    filename: str
    original_name: str
    mimetype: str
    size: int
    uploaded_at: str | None = None


class VoteRequest(BaseModel):
    type: VoteType


class VoteResponse(BaseModel):
    message: str
    vote_count: int
    upvotes: list[int]
    downvotes: list[int]
