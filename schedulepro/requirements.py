from numbers import Number
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, ValidationError

from .models import EQUIPMENT_CONDITIONS


class PersonRequirement(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Optional[str] = None
    skills: Optional[list[Any]] = None
    certifications: Optional[list[Any]] = None
    quantity: int


class VehicleRequirement(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    min_capacity: Optional[Union[int, float, Literal[""]]] = None
    quantity: int


class EquipmentRequirement(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    min_condition: Optional[Literal["excellent", "good", "fair", "poor", ""]] = None
    quantity: int


class Requirements(BaseModel):
    model_config = ConfigDict(extra="allow")

    people: list[PersonRequirement] = []
    vehicles: list[VehicleRequirement] = []
    equipment: list[EquipmentRequirement] = []


def _is_quantity(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1


# The booking form submits untouched optional inputs as "".
def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def _is_number(value: Any) -> bool:
    return isinstance(value, Number) and not isinstance(value, bool)


def _check_people(entries: Any) -> Optional[str]:
    if not isinstance(entries, list):
        return "People requirements must be an array."
    for entry in entries:
        if not isinstance(entry, dict):
            return "Each people requirement must be an object."
        if not _is_quantity(entry.get("quantity")):
            return "People requirement quantity must be at least 1."
        if entry.get("skills") is not None and not isinstance(entry["skills"], list):
            return "People requirement skills must be an array."
        if entry.get("certifications") is not None and not isinstance(entry["certifications"], list):
            return "People requirement certifications must be an array."
    return None


def _check_vehicles(entries: Any) -> Optional[str]:
    if not isinstance(entries, list):
        return "Vehicle requirements must be an array."
    for entry in entries:
        if not isinstance(entry, dict):
            return "Each vehicle requirement must be an object."
        if not _is_quantity(entry.get("quantity")):
            return "Vehicle requirement quantity must be at least 1."
        if not _is_blank(entry.get("min_capacity")) and not _is_number(entry["min_capacity"]):
            return "Vehicle min_capacity must be a number."
    return None


def _check_equipment(entries: Any) -> Optional[str]:
    if not isinstance(entries, list):
        return "Equipment requirements must be an array."
    for entry in entries:
        if not isinstance(entry, dict):
            return "Each equipment requirement must be an object."
        if not _is_quantity(entry.get("quantity")):
            return "Equipment requirement quantity must be at least 1."
        condition = entry.get("min_condition")
        if not _is_blank(condition) and condition not in EQUIPMENT_CONDITIONS:
            return "Equipment min_condition must be excellent, good, fair, or poor."
    return None


def validate_requirements(requirements: Any) -> Optional[str]:
    """Return an error message for a malformed document, or None if it is acceptable.

    ``None`` is valid (requirements are optional) and each list defaults to empty.
    Checks run people, then vehicles, then equipment, and the first failure is
    reported. Never raises on malformed input.
    """
    if requirements is None:
        return None
    if not isinstance(requirements, dict):
        return "Requirements must be an object."

    sections = {key: value for key, value in requirements.items() if value is not None}
    error = (
        _check_people(sections.get("people", []))
        or _check_vehicles(sections.get("vehicles", []))
        or _check_equipment(sections.get("equipment", []))
    )
    if error:
        return error

    try:
        Requirements.model_validate(sections)
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        return f"Invalid requirements: {location}: {first['msg']}"
    return None
