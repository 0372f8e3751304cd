from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from medvisit.core.errors import NotFoundError, translate_storage_errors
from medvisit.models.doctor import Doctor


async def get_doctor(session: AsyncSession, doctor_id: int) -> Doctor:
    result = await session.execute(select(Doctor).where(Doctor.id == doctor_id))
    doctor = result.scalar_one_or_none()
    if not doctor:
        raise NotFoundError("Doctor not found", doctor_id=doctor_id)
    return doctor


async def lock_doctor_schedule(session: AsyncSession, doctor_id: int) -> None:
    """
    Serialize schedule writers for one doctor until the transaction ends.

    Bumping the version takes the row lock in PostgreSQL and the database
    write lock in SQLite, so a concurrent writer blocks here and then reads
    the winner's committed rows.
    """
    result = await session.execute(
        update(Doctor)
        .where(Doctor.id == doctor_id)
        .values(schedule_version=Doctor.schedule_version + 1)
        .execution_options(synchronize_session=False)
    )
    if not result.rowcount:
        raise NotFoundError("Doctor not found", doctor_id=doctor_id)


@translate_storage_errors
async def list_doctors(session: AsyncSession, specialization: str | None = None) -> list[Doctor]:
    q = select(Doctor).order_by(Doctor.full_name)
    if specialization:
        q = q.where(Doctor.specialization == specialization.strip())
    result = await session.execute(q)
    return list(result.scalars().all())


async def create_doctor(session: AsyncSession, full_name: str, specialization: str) -> Doctor:
    doctor = Doctor(full_name=full_name, specialization=specialization)
    session.add(doctor)
    await session.flush()
    await session.refresh(doctor)
    return doctor
