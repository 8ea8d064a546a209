from typing import Optional

from pydantic import BaseModel

from models.comment import VoteType


class CreateCommentRequest(BaseModel):
    content: str
    rating: Optional[int] = None
    parent_id: Optional[int] = None


class UpdateCommentRequest(BaseModel):
    content: str


class VoteRequest(BaseModel):
    vote_type: VoteType
