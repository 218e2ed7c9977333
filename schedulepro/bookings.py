import uuid
from datetime import datetime, timezone

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlmodel import Session

from .analytics import track
from .assignments import insert_assignments, load_assignments, replace_assignments
from .crud import apply_changes, find_record, list_active, restore, soft_delete
from .database import get_session
from .models import Booking, BookingCreate, BookingRead
from .requirements import validate_requirements
from .responses import ApiResponse, success
from .security import get_company_id

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def check_booking(booking: BookingCreate):
    """Field, time range and requirements checks shared by create and update."""
    if not booking.title or not booking.start_time or not booking.end_time:
        raise HTTPException(
            status_code=400, detail="Title, start time, and end time are required"
        )
    if as_utc(booking.end_time) <= as_utc(booking.start_time):
        raise HTTPException(status_code=400, detail="End time must be after start time")
    if "requirements" in booking.model_fields_set:
        error = validate_requirements(booking.requirements)
        if error:
            raise HTTPException(status_code=400, detail=error)


def booking_read(session: Session, booking: Booking) -> BookingRead:
    assigned = load_assignments(session, [booking.id])
    return BookingRead.model_validate(booking, update=assigned[booking.id])


@router.get(
    "",
    response_model=ApiResponse[list[BookingRead]],
    summary="List bookings",
    response_description="Active bookings with their assigned resource ids",
)
def list_bookings(
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """List all non-deleted bookings of the caller's company, newest first.
    Each booking carries the ids in **people**, **vehicles** and **equipment**.
    """
    bookings = list_active(session, Booking, company_id)
    assigned = load_assignments(session, [booking.id for booking in bookings])
    return success(
        [BookingRead.model_validate(booking, update=assigned[booking.id]) for booking in bookings]
    )


@router.get("/{id}", response_model=ApiResponse[BookingRead], summary="Get booking")
def get_booking(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    booking = find_record(session, Booking, id, company_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")
    return success(booking_read(session, booking))


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[BookingRead],
    summary="Create booking",
)
def create_booking(
    booking: BookingCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """Create a booking and assign resources to it.
    - **title**, **start_time**, **end_time**: required, end after start
    - **requirements**: optional people/vehicles/equipment requirement lists
    - **people**, **vehicles**, **equipment**: resource ids to assign
    """
    check_booking(booking)

    db_booking = Booking(
        company_id=company_id,
        title=booking.title,
        location=booking.location or None,
        start_time=as_utc(booking.start_time),
        end_time=as_utc(booking.end_time),
        notes=booking.notes or None,
        requirements=booking.requirements or {},
    )
    session.add(db_booking)
    session.flush()
    insert_assignments(
        session, db_booking.id, booking.people, booking.vehicles, booking.equipment
    )
    session.commit()
    session.refresh(db_booking)

    background_tasks.add_task(track, "booking.created", company_id, {"booking_id": str(db_booking.id)})
    return success(booking_read(session, db_booking), "Booking created successfully")


@router.put("/{id}", response_model=ApiResponse[BookingRead], summary="Update booking")
def update_booking(
    id: uuid.UUID,
    booking: BookingCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """Replace a booking's fields and its whole resource assignment.
    Omitting **requirements** keeps the stored document; null or {} clears it.
    Omitted resource lists are treated as empty.
    """
    check_booking(booking)

    db_booking = find_record(session, Booking, id, company_id)
    if not db_booking:
        raise HTTPException(
            status_code=404, detail="Booking not found or does not belong to your company"
        )

    changes = {
        "title": booking.title,
        "location": booking.location or None,
        "start_time": as_utc(booking.start_time),
        "end_time": as_utc(booking.end_time),
        "notes": booking.notes or None,
    }
    if "requirements" in booking.model_fields_set:
        changes["requirements"] = booking.requirements or {}
    apply_changes(db_booking, changes)
    session.add(db_booking)
    replace_assignments(
        session, db_booking.id, booking.people, booking.vehicles, booking.equipment
    )
    session.commit()
    session.refresh(db_booking)

    background_tasks.add_task(track, "booking.updated", company_id, {"booking_id": str(db_booking.id)})
    return success(booking_read(session, db_booking), "Booking updated successfully")


@router.delete("/{id}", response_model=ApiResponse[BookingRead], summary="Delete booking")
def delete_booking(
    id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """Soft delete: the booking and its assignments are kept and can be restored."""
    booking = soft_delete(session, Booking, id, company_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found or already deleted")
    background_tasks.add_task(track, "booking.deleted", company_id, {"booking_id": str(booking.id)})
    return success(booking_read(session, booking), "Booking deleted successfully")


@router.post("/{id}/restore", response_model=ApiResponse[BookingRead], summary="Restore booking")
def restore_booking(
    id: uuid.UUID,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    booking = restore(session, Booking, id, company_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found or not deleted")
    background_tasks.add_task(track, "booking.restored", company_id, {"booking_id": str(booking.id)})
    return success(booking_read(session, booking), "Booking restored successfully")
