from enum import StrEnum

from sqlmodel import Field, SQLModel


class Role(StrEnum):
    PATIENT = "PATIENT"
    DOCTOR = "DOCTOR"
    ADMIN = "ADMIN"


class UserBase(SQLModel):
    email: str = Field(unique=True, index=True)
    full_name: str
    role: str = Field(default=Role.PATIENT, max_length=16)


class User(UserBase, table=True):
    __tablename__ = "users"
    id: int | None = Field(default=None, primary_key=True)
    hashed_password: str
    doctor_id: int | None = Field(default=None, foreign_key="doctors.id", index=True)


class UserCreate(SQLModel):
    email: str
    password: str
    full_name: str
    role: Role = Role.PATIENT
    doctor_id: int | None = None


class UserPublic(SQLModel):
    id: int
    email: str
    full_name: str
    role: Role
    doctor_id: int | None = None
