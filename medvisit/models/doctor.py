from sqlmodel import Field, SQLModel


class DoctorBase(SQLModel):
    full_name: str
    specialization: str = Field(index=True)


class Doctor(DoctorBase, table=True):
    __tablename__ = "doctors"
    id: int | None = Field(default=None, primary_key=True)
    # Bumped by every schedule write; the UPDATE doubles as the per-doctor write lock.
    schedule_version: int = Field(default=0)


class DoctorPublic(DoctorBase):
    id: int
