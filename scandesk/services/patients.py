"""Patient records saved from the dashboard's patient form."""

import logging

from scandesk.database import get_db
from scandesk.models.form import PatientInfo
from scandesk.models.patient import PatientRecord, SaveResult

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    "first_name",
    "last_name",
    "gender",
    "date_of_birth",
    "phone",
    "emergency_contact_name",
    "emergency_contact_relation",
    "emergency_contact_phone",
    "doctors_name",
)

_COLUMNS = (
    "first_name, last_name, gender, date_of_birth, phone, email, address, "
    "emergency_contact_name, emergency_contact_relation, emergency_contact_phone, "
    "blood_group, allergies, pre_existing_conditions, height, weight, doctors_name"
)


def _parse_measure(value: str) -> float | None:
    """Height/weight arrive as numeric strings; blank or junk becomes NULL."""
    value = (value or "").strip()
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        logger.warning("Ignoring non-numeric measurement %r", value)
        return None


def missing_patient_fields(info: PatientInfo) -> list[str]:
    return [name for name in REQUIRED_FIELDS if not getattr(info, name).strip()]


async def save_patient_record(info: PatientInfo) -> SaveResult:
    missing = missing_patient_fields(info)
    if missing:
        return SaveResult(success=False, error=f"Missing required fields: {', '.join(missing)}")

    db = await get_db()
    try:
        row_id = await db.execute(
            f"INSERT INTO patients ({_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                info.first_name,
                info.last_name,
                info.gender,
                info.date_of_birth,
                info.phone,
                info.email or None,
                info.address or None,
                info.emergency_contact_name,
                info.emergency_contact_relation,
                info.emergency_contact_phone,
                info.blood_group or None,
                info.allergies or None,
                info.pre_existing_conditions or None,
                _parse_measure(info.height),
                _parse_measure(info.weight),
                info.doctors_name,
            ),
        )
        await db.commit()
    except Exception as e:
        logger.error("Failed to save patient record: %s", e)
        return SaveResult(success=False, error=str(e) or "Failed to save patient record")

    logger.info("Saved patient record %s", row_id)
    return SaveResult(success=True, id=row_id)


def _row_to_record(row) -> PatientRecord:
    return PatientRecord(**{key: row[key] for key in row.keys()})


async def list_patient_records() -> list[PatientRecord]:
    db = await get_db()
    rows = await db.fetch_all("SELECT * FROM patients ORDER BY id DESC")
    return [_row_to_record(row) for row in rows]


async def get_patient_record(patient_id: int) -> PatientRecord | None:
    db = await get_db()
    row = await db.fetch_one("SELECT * FROM patients WHERE id = ?", (patient_id,))
    return _row_to_record(row) if row else None
