"""
Document models for synthetic ingestion workloads
Each data type is a closed variant with its own field set and size overhead estimate
"""
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Dict, List
import uuid

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..core.errors import ConfigValidationError


class DataType(Enum):
    """Domain of the generated documents"""
    FINANCIAL = "financial"
    ECOMMERCE = "ecommerce"
    HEALTHCARE = "healthcare"
    IOT = "iot"
    GENERIC = "generic"

    @classmethod
    def parse(cls, value: Any) -> "DataType":
        """Resolve an enum member from a member, value or name (case-insensitive)"""
        if isinstance(value, cls):
            return value
        normalized = str(value).strip().lower().replace("-", "").replace("_", "")
        for member in cls:
            if normalized in (member.value, member.name.lower()):
                return member
        allowed = ", ".join(m.value for m in cls)
        raise ConfigValidationError([f"Unknown data type '{value}'. Allowed: {allowed}"])


# Approximate serialized size in bytes of every typed field of a variant;
# the filler payload makes up the rest of the target size.
DOCUMENT_OVERHEAD_BYTES: Dict[DataType, int] = {
    DataType.FINANCIAL: 500,
    DataType.ECOMMERCE: 600,
    DataType.HEALTHCARE: 900,
    DataType.IOT: 850,
    DataType.GENERIC: 250,
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseDocument(BaseModel):
    """Fields shared by every generated document"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    data_type: ClassVar[DataType]

    id: str = Field(default_factory=lambda: str(uuid.uuid4()), description="Unique document identifier")
    partition_key: str = Field(..., description="Shard key assigned by the workload strategy")
    timestamp: datetime = Field(default_factory=_utcnow, description="Creation instant (UTC)")
    sequence_number: int = Field(..., description="Position in the run's sequence")
    data: str = Field(default="", description="Filler payload")

    def to_record(self) -> Dict[str, Any]:
        """Serialize with camelCase field names and the data type tag"""
        record = self.model_dump(by_alias=True)
        record["dataType"] = self.data_type.value
        return record


class FinancialDocument(BaseDocument):
    """Payment transaction"""
    data_type: ClassVar[DataType] = DataType.FINANCIAL

    transaction_id: str
    account_number: str
    transaction_type: str
    amount: float
    currency: str
    merchant_name: str
    category: str
    status: str
    description: str


class ECommerceDocument(BaseDocument):
    """Web shop order line"""
    data_type: ClassVar[DataType] = DataType.ECOMMERCE

    order_id: str
    customer_id: str
    customer_name: str
    email: str
    product_name: str
    product_category: str
    quantity: int
    price: float
    total_amount: float
    shipping_address: str
    order_status: str
    payment_method: str


class VitalSigns(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    heart_rate: int
    blood_pressure: str
    temperature: float
    oxygen_saturation: int


class HealthcareDocument(BaseDocument):
    """Patient encounter"""
    data_type: ClassVar[DataType] = DataType.HEALTHCARE

    patient_id: str
    patient_name: str
    date_of_birth: datetime
    gender: str
    diagnosis_code: str
    diagnosis: str
    treatment_type: str
    physician_name: str
    facility_name: str
    vital_signs: VitalSigns
    medications: List[str]
    status: str


class Location(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    latitude: float
    longitude: float
    city: str
    country: str


class IoTDocument(BaseDocument):
    """Sensor telemetry reading"""
    data_type: ClassVar[DataType] = DataType.IOT

    device_id: str
    device_type: str
    location: Location
    temperature: float
    humidity: float
    pressure: float
    battery_level: int
    signal_strength: int
    status: str
    firmware: str
    sensor_readings: Dict[str, float]


class GenericDocument(BaseDocument):
    """Minimal document carrying only the filler payload"""
    data_type: ClassVar[DataType] = DataType.GENERIC

    workload_type: str
