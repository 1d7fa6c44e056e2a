from pydantic import BaseModel


class PatientRecord(BaseModel):
    id: int
    first_name: str
    last_name: str
    gender: str
    date_of_birth: str
    phone: str
    email: str | None = None
    address: str | None = None
    emergency_contact_name: str
    emergency_contact_relation: str
    emergency_contact_phone: str
    blood_group: str | None = None
    allergies: str | None = None
    pre_existing_conditions: str | None = None
    height: float | None = None
    weight: float | None = None
    doctors_name: str
    created_at: str | None = None


class SaveResult(BaseModel):
    success: bool
    id: int | None = None
    error: str | None = None
