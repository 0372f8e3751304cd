from pydantic import BaseModel, Field


class ReviewCreate(BaseModel):
    doctor_id: int
    rating: int = Field(ge=1, le=5)
    comment: str | None = None


class ReviewReply(BaseModel):
    reply: str = Field(min_length=2)


class ReviewCreated(BaseModel):
    id: int
