from sqlalchemy import JSON, DateTime, TypeDecorator, UniqueConstraint
from sqlmodel import SQLModel, Field
import datetime
import uuid
from typing import Any, Optional


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime column, always written and read back as UTC.

    Some backends (SQLite) drop the offset, so naive values coming back from
    the database are taken to be UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is not None and value.tzinfo is not None:
            value = value.astimezone(datetime.timezone.utc)
        return value

    def process_result_value(self, value, dialect):
        if value is not None and value.tzinfo is None:
            value = value.replace(tzinfo=datetime.timezone.utc)
        return value


class TenantRecord(SQLModel):
    """Columns shared by every company-owned, soft-deletable row."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    company_id: uuid.UUID = Field(foreign_key="companies.id", index=True)
    is_deleted: bool = Field(default=False, index=True)
    deleted_at: Optional[datetime.datetime] = Field(default=None, sa_type=UTCDateTime)
    created_at: datetime.datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)
    updated_at: datetime.datetime = Field(default_factory=utcnow, sa_type=UTCDateTime)


class TenantRecordRead(SQLModel):
    id: uuid.UUID
    company_id: uuid.UUID
    is_deleted: bool
    deleted_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    updated_at: datetime.datetime


###############
# COMPANY MODEL
###############


class Company(SQLModel, table=True):
    __tablename__ = "companies"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str
    slug: str = Field(index=True)
    settings: dict = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime.datetime = Field(default_factory=utcnow)


class CompanySummary(SQLModel):
    id: uuid.UUID
    name: str
    slug: str


############
# USER MODEL
############


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    email: str = Field(index=True, unique=True)
    hashed_password: str
    created_at: datetime.datetime = Field(default_factory=utcnow)


class RevokedToken(SQLModel, table=True):
    __tablename__ = "revoked_tokens"

    jti: str = Field(primary_key=True)
    user_id: uuid.UUID = Field(foreign_key="users.id", index=True)
    expires_at: Optional[datetime.datetime] = None
    revoked_at: datetime.datetime = Field(default_factory=utcnow)


class RegisterRequest(SQLModel):
    company_name: Optional[str] = None
    name: Optional[str] = None
    email: Optional[str] = None
    password: Optional[str] = None


class LoginRequest(SQLModel):
    email: Optional[str] = None
    password: Optional[str] = None


class AuthUser(SQLModel):
    id: uuid.UUID
    email: str


class SessionTokens(SQLModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class Profile(SQLModel):
    id: uuid.UUID
    name: str
    email: str
    company_id: uuid.UUID
    company_name: str


class AuthPayload(SQLModel):
    user: AuthUser
    session: SessionTokens
    profile: Profile


class CurrentUserRead(SQLModel):
    id: uuid.UUID
    name: str
    email: str
    phone: Optional[str] = None
    company: CompanySummary


##############
# PERSON MODEL
##############


class PersonBase(SQLModel):
    name: str
    email: str = Field(index=True)
    phone: Optional[str] = None
    home_address: Optional[str] = None
    skills: list[str] = Field(default_factory=list, sa_type=JSON)
    certifications: list[str] = Field(default_factory=list, sa_type=JSON)
    hourly_rate: Optional[float] = None


class Person(PersonBase, TenantRecord, table=True):
    __tablename__ = "people"

    user_id: Optional[uuid.UUID] = Field(default=None, foreign_key="users.id", index=True)


class PersonCreate(SQLModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    home_address: Optional[str] = None
    skills: Optional[list[str]] = None
    certifications: Optional[list[str]] = None
    hourly_rate: Optional[float] = None


class PersonRead(PersonBase, TenantRecordRead):
    user_id: Optional[uuid.UUID] = None


###############
# VEHICLE MODEL
###############


class VehicleBase(SQLModel):
    name: str
    license_plate: str
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    capacity: Optional[int] = None
    notes: Optional[str] = None


class Vehicle(VehicleBase, TenantRecord, table=True):
    __tablename__ = "vehicles"
    __table_args__ = (UniqueConstraint("company_id", "license_plate"),)


class VehicleCreate(SQLModel):
    name: Optional[str] = None
    license_plate: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    year: Optional[int] = None
    capacity: Optional[int] = None
    notes: Optional[str] = None


class VehicleRead(VehicleBase, TenantRecordRead):
    pass


#################
# EQUIPMENT MODEL
#################

EQUIPMENT_CONDITIONS = ("excellent", "good", "fair", "poor")


class EquipmentBase(SQLModel):
    name: str
    serial_number: str
    type: Optional[str] = None
    condition: Optional[str] = None
    notes: Optional[str] = None


class Equipment(EquipmentBase, TenantRecord, table=True):
    __tablename__ = "equipment"
    __table_args__ = (UniqueConstraint("company_id", "serial_number"),)


class EquipmentCreate(SQLModel):
    name: Optional[str] = None
    serial_number: Optional[str] = None
    type: Optional[str] = None
    condition: Optional[str] = None
    notes: Optional[str] = None


class EquipmentRead(EquipmentBase, TenantRecordRead):
    pass


###############
# BOOKING MODEL
###############


class BookingBase(SQLModel):
    title: str
    location: Optional[str] = None
    start_time: datetime.datetime = Field(sa_type=UTCDateTime)
    end_time: datetime.datetime = Field(sa_type=UTCDateTime)
    notes: Optional[str] = None
    requirements: dict = Field(default_factory=dict, sa_type=JSON)


class Booking(BookingBase, TenantRecord, table=True):
    __tablename__ = "bookings"


class BookingCreate(SQLModel):
    title: Optional[str] = None
    location: Optional[str] = None
    start_time: Optional[datetime.datetime] = None
    end_time: Optional[datetime.datetime] = None
    notes: Optional[str] = None
    # Left untyped so the requirements validator sees exactly what was sent.
    requirements: Optional[Any] = None
    people: Optional[list[uuid.UUID]] = None
    vehicles: Optional[list[uuid.UUID]] = None
    equipment: Optional[list[uuid.UUID]] = None


class BookingRead(BookingBase, TenantRecordRead):
    people: list[uuid.UUID] = []
    vehicles: list[uuid.UUID] = []
    equipment: list[uuid.UUID] = []


class BookingPerson(SQLModel, table=True):
    __tablename__ = "booking_people"

    id: Optional[int] = Field(default=None, primary_key=True)
    booking_id: uuid.UUID = Field(foreign_key="bookings.id", index=True)
    person_id: uuid.UUID = Field(foreign_key="people.id")


class BookingVehicle(SQLModel, table=True):
    __tablename__ = "booking_vehicles"

    id: Optional[int] = Field(default=None, primary_key=True)
    booking_id: uuid.UUID = Field(foreign_key="bookings.id", index=True)
    vehicle_id: uuid.UUID = Field(foreign_key="vehicles.id")


class BookingEquipment(SQLModel, table=True):
    __tablename__ = "booking_equipment"

    id: Optional[int] = Field(default=None, primary_key=True)
    booking_id: uuid.UUID = Field(foreign_key="bookings.id", index=True)
    equipment_id: uuid.UUID = Field(foreign_key="equipment.id")


#################
# ANALYTICS MODEL
#################


class AnalyticsEvent(SQLModel, table=True):
    __tablename__ = "analytics_events"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    event_name: str = Field(index=True)
    company_id: Optional[uuid.UUID] = Field(default=None, index=True)
    properties: dict = Field(default_factory=dict, sa_type=JSON)
    created_at: datetime.datetime = Field(default_factory=utcnow)
