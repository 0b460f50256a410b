"""
Field service report record.

The JSON form of a record uses camelCase keys (``swoNo``, ``jobTypes`` ...) so
snapshots stay interchangeable with the browser editor's local storage.
Python code uses the snake_case attribute names.
"""
import uuid
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def auto_fsr_number(now: Optional[datetime] = None) -> str:
    now = now or datetime.now()
    return f"FSR-{now.strftime('%y%m%d-%H%M%S')}"


class FsrModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        validate_assignment=True,
        coerce_numbers_to_str=True,
    )


class JobTypes(FsrModel):
    site_survey: bool = False
    training: bool = False
    corrective: bool = False
    installation: bool = False
    update: bool = False
    preventive: bool = False


class ServiceTypes(FsrModel):
    chargeable: bool = True
    contract: bool = False
    warranty: bool = False


class Part(FsrModel):
    part_name: str = ""
    part_no: str = ""
    qty: str = ""
    status: str = ""

    def is_blank(self) -> bool:
        return not (self.part_name or self.part_no or self.qty or self.status)


class Photo(FsrModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    src: str = ""
    caption: str = ""


class FsrRecord(FsrModel):
    # Unknown keys from imported snapshots are kept and written back out
    model_config = ConfigDict(extra="allow")

    # Admin
    swo_no: str = ""
    fsr_no: str = Field(default_factory=auto_fsr_number)

    # Customer
    customer_name: str = ""
    address: str = ""
    contact_person: str = ""
    phone: str = ""

    # System
    modality: str = "IGT/CV"
    model: str = "Allura Centron"
    serial_no: str = ""
    product_no: str = ""

    # Timing
    start_travel_date: str = ""
    start_travel_time: str = "08:00"
    arrived_date: str = ""
    arrived_time: str = "09:30"
    work_start_date: str = ""
    work_start_time: str = "10:00"
    work_finish_date: str = ""
    work_finish_time: str = "17:00"
    breakdown: str = ""

    job_types: JobTypes = Field(default_factory=JobTypes)
    service_types: ServiceTypes = Field(default_factory=ServiceTypes)

    # Work notes
    problem: str = ""
    action: str = ""
    job_status: str = "Incomplete"
    status_chargeable: str = "Chargeable"  # Chargeable / FOC / Borrow
    condition_when_leave: str = ""

    parts: List[Part] = Field(default_factory=lambda: [Part()])

    # Media, as data URLs
    logo: Optional[str] = None
    photos: List[Photo] = Field(default_factory=list)

    # Signatures
    fse_name: str = ""
    trainer_name: str = ""
    fse_sign: Optional[str] = None
    trainer_sign: Optional[str] = None

    def to_document(self) -> dict:
        return self.model_dump(mode="json", by_alias=True)


SECTIONS: Dict[str, Tuple[str, ...]] = {
    "admin": ("swo_no", "fsr_no"),
    "customer": ("customer_name", "address", "contact_person", "phone"),
    "system": ("modality", "model", "serial_no", "product_no"),
    "timing": (
        "start_travel_date", "start_travel_time",
        "arrived_date", "arrived_time",
        "work_start_date", "work_start_time",
        "work_finish_date", "work_finish_time",
        "breakdown",
    ),
    "notes": ("problem", "action", "job_status", "status_chargeable", "condition_when_leave"),
    "signatures": ("fse_name", "trainer_name", "fse_sign", "trainer_sign"),
}

DATE_FIELDS = ("start_travel_date", "arrived_date", "work_start_date", "work_finish_date")

SIGNATORIES = {"fse": "fse_sign", "trainer": "trainer_sign"}

JOB_TYPE_LABELS = {
    "site_survey": "Site Survey",
    "training": "Training",
    "corrective": "Corrective Maintenance",
    "installation": "Installation",
    "update": "Update",
    "preventive": "Preventive Maintenance",
}

SERVICE_TYPE_LABELS = {
    "chargeable": "Chargeable",
    "contract": "Contract Service",
    "warranty": "Warranty",
}


def field_name(model_cls, key: str) -> Optional[str]:
    """Resolve a snake_case or camelCase key to the attribute name on ``model_cls``."""
    if key in model_cls.model_fields:
        return key
    for name, info in model_cls.model_fields.items():
        if info.alias == key:
            return name
    return None
