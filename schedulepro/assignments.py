import uuid
from collections import defaultdict
from typing import Iterable, Optional

from sqlmodel import Session, select

from .models import BookingEquipment, BookingPerson, BookingVehicle

# (junction model, column holding the resource id) per resource kind
JUNCTIONS = {
    "people": (BookingPerson, "person_id"),
    "vehicles": (BookingVehicle, "vehicle_id"),
    "equipment": (BookingEquipment, "equipment_id"),
}


def insert_assignments(
    session: Session,
    booking_id: uuid.UUID,
    people: Optional[list[uuid.UUID]] = None,
    vehicles: Optional[list[uuid.UUID]] = None,
    equipment: Optional[list[uuid.UUID]] = None,
):
    """Add one junction row per id.

    Ids are taken as given: duplicates produce duplicate rows and nothing checks
    that the referenced resource exists or belongs to the booking's company.
    Rows are only staged on the session; the caller commits.
    """
    requested = {"people": people, "vehicles": vehicles, "equipment": equipment}
    for kind, ids in requested.items():
        if not ids:
            continue
        model, column = JUNCTIONS[kind]
        session.add_all([model(booking_id=booking_id, **{column: resource_id}) for resource_id in ids])
    session.flush()


def clear_assignments(session: Session, booking_id: uuid.UUID):
    for model, _ in JUNCTIONS.values():
        links = session.exec(select(model).where(model.booking_id == booking_id)).all()
        for link in links:
            session.delete(link)
    session.flush()


def replace_assignments(
    session: Session,
    booking_id: uuid.UUID,
    people: Optional[list[uuid.UUID]] = None,
    vehicles: Optional[list[uuid.UUID]] = None,
    equipment: Optional[list[uuid.UUID]] = None,
):
    """Drop every existing link for the booking, then insert the new id sets.

    This is a wholesale replace: a resource that stays assigned is deleted and
    re-inserted, and an omitted list leaves that kind with no assignments.
    """
    clear_assignments(session, booking_id)
    insert_assignments(session, booking_id, people, vehicles, equipment)


def load_assignments(session: Session, booking_ids: Iterable[uuid.UUID]) -> dict:
    """Map booking id -> {"people": [...], "vehicles": [...], "equipment": [...]}."""
    booking_ids = list(booking_ids)
    assigned = defaultdict(lambda: {kind: [] for kind in JUNCTIONS})
    if not booking_ids:
        return assigned

    for kind, (model, column) in JUNCTIONS.items():
        links = session.exec(
            select(model).where(model.booking_id.in_(booking_ids)).order_by(model.id)
        ).all()
        for link in links:
            assigned[link.booking_id][kind].append(getattr(link, column))
    return assigned
