from datetime import datetime

from sqlalchemy import UniqueConstraint
from sqlmodel import Field, SQLModel

from medvisit.models.appointment import _utc_naive_now


class Review(SQLModel, table=True):
    __tablename__ = "reviews"
    __table_args__ = (UniqueConstraint("doctor_id", "author_id", name="uq_reviews_doctor_author"),)
    id: int | None = Field(default=None, primary_key=True)
    doctor_id: int = Field(foreign_key="doctors.id", index=True)
    author_id: int = Field(foreign_key="users.id", index=True)
    rating: int
    comment: str | None = None
    doctor_reply: str | None = None
    doctor_reply_at: datetime | None = None
    created_at: datetime = Field(default_factory=_utc_naive_now)


class ReviewPublic(SQLModel):
    id: int
    doctor_id: int
    rating: int
    comment: str | None = None
    author_name: str
    doctor_reply: str | None = None
    doctor_reply_at: datetime | None = None
    created_at: datetime
