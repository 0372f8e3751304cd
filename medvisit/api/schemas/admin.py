from pydantic import BaseModel, EmailStr, Field


class DoctorAccountCreate(BaseModel):
    email: EmailStr
    password: str = Field(min_length=6)
    full_name: str = Field(min_length=2)
    specialization: str = Field(min_length=2)


class DoctorAccountCreated(BaseModel):
    user_id: int
    doctor_id: int
