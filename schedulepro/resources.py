import uuid

import structlog
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from .analytics import track
from .crud import apply_changes, find_record, list_active, restore, soft_delete
from .database import get_session
from .models import (
    EQUIPMENT_CONDITIONS,
    Equipment,
    EquipmentCreate,
    EquipmentRead,
    Person,
    PersonCreate,
    PersonRead,
    Vehicle,
    VehicleCreate,
    VehicleRead,
)
from .responses import ApiResponse, success
from .security import get_company_id

logger = structlog.get_logger(__name__)


def commit_unique(session: Session, duplicate_message: str):
    """Commit, turning a unique-constraint violation into a 400."""
    try:
        session.commit()
    except IntegrityError as exc:
        session.rollback()
        logger.info("unique_constraint_violation", error=str(exc.orig))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=duplicate_message)


# --- People ---
people_router = APIRouter(prefix="/api/people", tags=["People"])


@people_router.get(
    "",
    response_model=ApiResponse[list[PersonRead]],
    summary="List people",
    response_description="Active people of the caller's company",
)
def list_people(
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """List all non-deleted people, newest first."""
    people = list_active(session, Person, company_id)
    return success([PersonRead.model_validate(person) for person in people])


@people_router.get("/{id}", response_model=ApiResponse[PersonRead], summary="Get person")
def get_person(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    person = find_record(session, Person, id, company_id)
    if not person:
        raise HTTPException(status_code=404, detail="Person not found")
    return success(PersonRead.model_validate(person))


@people_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[PersonRead],
    summary="Create person",
)
def create_person(
    person: PersonCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """
    Add a person to the caller's company.
    - **name**, **email**: required
    """
    if not person.name or not person.email:
        raise HTTPException(status_code=400, detail="Name and email are required")

    db_person = Person(
        company_id=company_id,
        name=person.name,
        email=person.email,
        phone=person.phone or None,
        home_address=person.home_address or None,
        skills=person.skills or [],
        certifications=person.certifications or [],
        hourly_rate=person.hourly_rate,
    )
    session.add(db_person)
    session.commit()
    session.refresh(db_person)
    background_tasks.add_task(track, "person.created", company_id, {"person_id": str(db_person.id)})
    return success(PersonRead.model_validate(db_person), "Person created successfully")


@people_router.put("/{id}", response_model=ApiResponse[PersonRead], summary="Update person")
def update_person(
    id: uuid.UUID,
    person: PersonCreate,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """
    Replace a person's editable fields. skills, certifications and hourly_rate
    are only changed when present in the body.
    """
    if not person.name or not person.email:
        raise HTTPException(status_code=400, detail="Name and email are required")

    db_person = find_record(session, Person, id, company_id)
    if not db_person:
        raise HTTPException(
            status_code=404, detail="Person not found or does not belong to your company"
        )

    changes = {
        "name": person.name,
        "email": person.email,
        "phone": person.phone or None,
        "home_address": person.home_address or None,
    }
    for listed in ("skills", "certifications"):
        if listed in person.model_fields_set:
            changes[listed] = getattr(person, listed) or []
    if "hourly_rate" in person.model_fields_set:
        changes["hourly_rate"] = person.hourly_rate
    apply_changes(db_person, changes)
    session.add(db_person)
    session.commit()
    session.refresh(db_person)
    return success(PersonRead.model_validate(db_person), "Person updated successfully")


@people_router.delete("/{id}", response_model=ApiResponse[PersonRead], summary="Delete person")
def delete_person(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """Soft delete: the row is kept and can be restored."""
    person = soft_delete(session, Person, id, company_id)
    if not person:
        raise HTTPException(status_code=404, detail="Person not found or already deleted")
    return success(PersonRead.model_validate(person), "Person deleted successfully")


@people_router.post("/{id}/restore", response_model=ApiResponse[PersonRead], summary="Restore person")
def restore_person(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    person = restore(session, Person, id, company_id)
    if not person:
        raise HTTPException(status_code=404, detail="Person not found or not deleted")
    return success(PersonRead.model_validate(person), "Person restored successfully")


# --- Vehicles ---
vehicles_router = APIRouter(prefix="/api/vehicles", tags=["Vehicles"])

DUPLICATE_PLATE = "A vehicle with this license plate already exists in your company"


def vehicle_fields(vehicle: VehicleCreate) -> dict:
    return {
        "name": vehicle.name,
        "license_plate": vehicle.license_plate,
        "make": vehicle.make or None,
        "model": vehicle.model or None,
        "year": vehicle.year,
        "capacity": vehicle.capacity,
        "notes": vehicle.notes or None,
    }


@vehicles_router.get("", response_model=ApiResponse[list[VehicleRead]], summary="List vehicles")
def list_vehicles(
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    vehicles = list_active(session, Vehicle, company_id)
    return success([VehicleRead.model_validate(vehicle) for vehicle in vehicles])


@vehicles_router.get("/{id}", response_model=ApiResponse[VehicleRead], summary="Get vehicle")
def get_vehicle(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    vehicle = find_record(session, Vehicle, id, company_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found")
    return success(VehicleRead.model_validate(vehicle))


@vehicles_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[VehicleRead],
    summary="Create vehicle",
)
def create_vehicle(
    vehicle: VehicleCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """
    Add a vehicle. License plates are unique within a company.
    - **name**, **license_plate**: required
    """
    if not vehicle.name or not vehicle.license_plate:
        raise HTTPException(status_code=400, detail="Name and license plate are required")

    db_vehicle = Vehicle(company_id=company_id, **vehicle_fields(vehicle))
    session.add(db_vehicle)
    commit_unique(session, DUPLICATE_PLATE)
    session.refresh(db_vehicle)
    background_tasks.add_task(track, "vehicle.created", company_id, {"vehicle_id": str(db_vehicle.id)})
    return success(VehicleRead.model_validate(db_vehicle), "Vehicle created successfully")


@vehicles_router.put("/{id}", response_model=ApiResponse[VehicleRead], summary="Update vehicle")
def update_vehicle(
    id: uuid.UUID,
    vehicle: VehicleCreate,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    if not vehicle.name or not vehicle.license_plate:
        raise HTTPException(status_code=400, detail="Name and license plate are required")

    db_vehicle = find_record(session, Vehicle, id, company_id)
    if not db_vehicle:
        raise HTTPException(
            status_code=404, detail="Vehicle not found or does not belong to your company"
        )
    apply_changes(db_vehicle, vehicle_fields(vehicle))
    session.add(db_vehicle)
    commit_unique(session, DUPLICATE_PLATE)
    session.refresh(db_vehicle)
    return success(VehicleRead.model_validate(db_vehicle), "Vehicle updated successfully")


@vehicles_router.delete("/{id}", response_model=ApiResponse[VehicleRead], summary="Delete vehicle")
def delete_vehicle(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    vehicle = soft_delete(session, Vehicle, id, company_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found or already deleted")
    return success(VehicleRead.model_validate(vehicle), "Vehicle deleted successfully")


@vehicles_router.post("/{id}/restore", response_model=ApiResponse[VehicleRead], summary="Restore vehicle")
def restore_vehicle(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    vehicle = restore(session, Vehicle, id, company_id)
    if not vehicle:
        raise HTTPException(status_code=404, detail="Vehicle not found or not deleted")
    return success(VehicleRead.model_validate(vehicle), "Vehicle restored successfully")


# --- Equipment ---
equipment_router = APIRouter(prefix="/api/equipment", tags=["Equipment"])

DUPLICATE_SERIAL = "Equipment with this serial number already exists in your company"


def check_equipment(equipment: EquipmentCreate):
    if not equipment.name or not equipment.serial_number:
        raise HTTPException(status_code=400, detail="Name and serial number are required")
    if equipment.condition and equipment.condition not in EQUIPMENT_CONDITIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Condition must be one of: {', '.join(EQUIPMENT_CONDITIONS)}",
        )


def equipment_fields(equipment: EquipmentCreate) -> dict:
    return {
        "name": equipment.name,
        "serial_number": equipment.serial_number,
        "type": equipment.type or None,
        "condition": equipment.condition or None,
        "notes": equipment.notes or None,
    }


@equipment_router.get("", response_model=ApiResponse[list[EquipmentRead]], summary="List equipment")
def list_equipment(
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    items = list_active(session, Equipment, company_id)
    return success([EquipmentRead.model_validate(item) for item in items])


@equipment_router.get("/{id}", response_model=ApiResponse[EquipmentRead], summary="Get equipment")
def get_equipment(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    item = find_record(session, Equipment, id, company_id)
    if not item:
        raise HTTPException(status_code=404, detail="Equipment not found")
    return success(EquipmentRead.model_validate(item))


@equipment_router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=ApiResponse[EquipmentRead],
    summary="Create equipment",
)
def create_equipment(
    equipment: EquipmentCreate,
    background_tasks: BackgroundTasks,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    """
    Add a piece of equipment. Serial numbers are unique within a company.
    - **name**, **serial_number**: required
    - **condition**: excellent, good, fair or poor
    """
    check_equipment(equipment)
    item = Equipment(company_id=company_id, **equipment_fields(equipment))
    session.add(item)
    commit_unique(session, DUPLICATE_SERIAL)
    session.refresh(item)
    background_tasks.add_task(track, "equipment.created", company_id, {"equipment_id": str(item.id)})
    return success(EquipmentRead.model_validate(item), "Equipment created successfully")


@equipment_router.put("/{id}", response_model=ApiResponse[EquipmentRead], summary="Update equipment")
def update_equipment(
    id: uuid.UUID,
    equipment: EquipmentCreate,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    check_equipment(equipment)
    item = find_record(session, Equipment, id, company_id)
    if not item:
        raise HTTPException(
            status_code=404, detail="Equipment not found or does not belong to your company"
        )
    apply_changes(item, equipment_fields(equipment))
    session.add(item)
    commit_unique(session, DUPLICATE_SERIAL)
    session.refresh(item)
    return success(EquipmentRead.model_validate(item), "Equipment updated successfully")


@equipment_router.delete("/{id}", response_model=ApiResponse[EquipmentRead], summary="Delete equipment")
def delete_equipment(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    item = soft_delete(session, Equipment, id, company_id)
    if not item:
        raise HTTPException(status_code=404, detail="Equipment not found or already deleted")
    return success(EquipmentRead.model_validate(item), "Equipment deleted successfully")


@equipment_router.post(
    "/{id}/restore", response_model=ApiResponse[EquipmentRead], summary="Restore equipment"
)
def restore_equipment(
    id: uuid.UUID,
    session: Session = Depends(get_session),
    company_id: uuid.UUID = Depends(get_company_id),
):
    item = restore(session, Equipment, id, company_id)
    if not item:
        raise HTTPException(status_code=404, detail="Equipment not found or not deleted")
    return success(EquipmentRead.model_validate(item), "Equipment restored successfully")
