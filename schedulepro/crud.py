import uuid
from typing import Optional, TypeVar

from sqlmodel import Session, select

from .models import TenantRecord, utcnow

RecordT = TypeVar("RecordT", bound=TenantRecord)


def list_active(session: Session, model: type[RecordT], company_id: uuid.UUID) -> list[RecordT]:
    statement = (
        select(model)
        .where(model.company_id == company_id)
        .where(model.is_deleted == False)  # noqa: E712
        .order_by(model.created_at.desc())
    )
    return list(session.exec(statement).all())


def find_record(
    session: Session,
    model: type[RecordT],
    record_id: uuid.UUID,
    company_id: uuid.UUID,
    deleted: bool = False,
) -> Optional[RecordT]:
    statement = (
        select(model)
        .where(model.id == record_id)
        .where(model.company_id == company_id)
        .where(model.is_deleted == deleted)
    )
    return session.exec(statement).first()


# Deleting only applies to active rows and restoring only to deleted ones.
def soft_delete(session: Session, model: type[RecordT], record_id: uuid.UUID, company_id: uuid.UUID) -> Optional[RecordT]:
    record = find_record(session, model, record_id, company_id, deleted=False)
    if record is None:
        return None
    record.is_deleted = True
    record.deleted_at = utcnow()
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def restore(session: Session, model: type[RecordT], record_id: uuid.UUID, company_id: uuid.UUID) -> Optional[RecordT]:
    record = find_record(session, model, record_id, company_id, deleted=True)
    if record is None:
        return None
    record.is_deleted = False
    record.deleted_at = None
    session.add(record)
    session.commit()
    session.refresh(record)
    return record


def apply_changes(record: TenantRecord, changes: dict):
    for key, value in changes.items():
        setattr(record, key, value)
    record.updated_at = utcnow()
