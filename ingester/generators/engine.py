"""
Workload Generation
Builds batches of synthetic documents sized to the configured target and keyed by the workload strategy
"""
import logging
import string
from dataclasses import dataclass, field
from datetime import timezone
from functools import partial
from typing import Any, Callable, Dict, List, Optional

from faker import Faker

from .documents import (
    DOCUMENT_OVERHEAD_BYTES,
    BaseDocument,
    DataType,
    ECommerceDocument,
    FinancialDocument,
    GenericDocument,
    HealthcareDocument,
    IoTDocument,
    Location,
    VitalSigns,
)
from .partitioning import PartitionKeyStrategy, WorkloadStrategy

logger = logging.getLogger(__name__)

ALPHANUMERIC = tuple(string.ascii_uppercase + string.digits)


@dataclass
class GenerationBatch:
    """A batch of generated documents"""
    documents: List[BaseDocument]
    start_sequence: int
    data_type: DataType
    strategy: WorkloadStrategy
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.documents)

    @property
    def end_sequence(self) -> int:
        """Sequence number following the last document of the batch"""
        return self.start_sequence + len(self.documents)


class WorkloadGenerator:
    """
    Generates batches of synthetic domain documents

    Shape is deterministic: a batch always holds `batch_size` documents with
    consecutive sequence numbers and strategy-assigned partition keys.
    Field values are drawn from the injected fake value provider.
    """

    TRANSACTION_TYPES = ["Debit", "Credit", "Transfer", "Withdrawal", "Deposit"]
    SPENDING_CATEGORIES = ["Groceries", "Entertainment", "Travel", "Healthcare", "Utilities", "Shopping"]
    TRANSACTION_STATUSES = ["Completed", "Pending", "Failed", "Processing"]

    PRODUCT_ADJECTIVES = ["Small", "Ergonomic", "Rustic", "Intelligent", "Gorgeous", "Incredible",
                          "Practical", "Sleek", "Handcrafted", "Refined", "Licensed", "Generic"]
    PRODUCT_MATERIALS = ["Steel", "Wooden", "Concrete", "Plastic", "Cotton", "Granite",
                         "Rubber", "Metal", "Soft", "Fresh", "Frozen"]
    PRODUCT_NAMES = ["Chair", "Car", "Computer", "Keyboard", "Mouse", "Bike", "Ball", "Gloves",
                     "Pants", "Shirt", "Table", "Shoes", "Hat", "Towels", "Soap", "Tuna",
                     "Chicken", "Fish", "Cheese", "Bacon", "Pizza", "Salad", "Sausages", "Chips"]
    DEPARTMENTS = ["Books", "Movies", "Music", "Games", "Electronics", "Computers", "Home",
                   "Garden", "Tools", "Grocery", "Health", "Beauty", "Toys", "Kids", "Baby",
                   "Clothing", "Shoes", "Jewelery", "Sports", "Outdoors", "Automotive", "Industrial"]
    ORDER_STATUSES = ["Pending", "Processing", "Shipped", "Delivered", "Cancelled"]
    PAYMENT_METHODS = ["Credit Card", "Debit Card", "PayPal", "Bank Transfer"]

    GENDERS = ["Male", "Female", "Other"]
    DIAGNOSES = ["Hypertension", "Diabetes Type 2", "Asthma", "Arthritis", "Migraine", "Allergy"]
    TREATMENT_TYPES = ["Medication", "Surgery", "Therapy", "Observation", "Vaccination"]
    MEDICATIONS = ["Lisinopril", "Metformin", "Albuterol", "Ibuprofen", "Sumatriptan", "Cetirizine",
                   "Atorvastatin", "Amlodipine", "Omeprazole", "Levothyroxine"]
    PATIENT_STATUSES = ["Active", "Discharged", "Under Observation", "Critical"]

    DEVICE_TYPES = ["Temperature Sensor", "Humidity Sensor", "Motion Detector", "Smart Meter", "Weather Station"]
    DEVICE_STATUSES = ["Online", "Offline", "Maintenance", "Error"]

    def __init__(self, fake: Optional[Faker] = None):
        self.fake = fake or Faker()
        self.documents_generated = 0

    def _builders(self, strategy: WorkloadStrategy) -> Dict[DataType, Callable[[str, str, int], BaseDocument]]:
        """Builder per data type, each taking (partition_key, padding, sequence_number)"""
        return {
            DataType.FINANCIAL: self.generate_financial,
            DataType.ECOMMERCE: self.generate_ecommerce,
            DataType.HEALTHCARE: self.generate_healthcare,
            DataType.IOT: self.generate_iot,
            DataType.GENERIC: partial(self.generate_generic, strategy=strategy),
        }

    def generate_batch(self, config, start_sequence: int) -> GenerationBatch:
        """
        Generate one batch for the given ingestion configuration

        Args:
            config: IngestionConfig providing batch_size, document_size_kb,
                workload_strategy and data_type
            start_sequence: sequence number of the first document

        Returns:
            GenerationBatch with exactly config.batch_size documents
        """
        data_type = DataType.parse(config.data_type)
        strategy = PartitionKeyStrategy(config.workload_strategy)
        padding = self.padding_for(data_type, config.document_size_kb)
        build = self._builders(strategy.strategy)[data_type]

        documents = []
        for i in range(config.batch_size):
            sequence_number = start_sequence + i
            documents.append(build(strategy.key_for(sequence_number), padding, sequence_number))

        self.documents_generated += len(documents)
        return GenerationBatch(
            documents=documents,
            start_sequence=start_sequence,
            data_type=data_type,
            strategy=strategy.strategy,
            metadata={"document_size_kb": config.document_size_kb, "padding_bytes": len(padding)},
        )

    @staticmethod
    def padding_for(data_type: DataType, document_size_kb: int) -> str:
        """Filler string bringing a document up to roughly the target size"""
        target_bytes = document_size_kb * 1024
        return "X" * max(0, target_bytes - DOCUMENT_OVERHEAD_BYTES[data_type])

    def _code(self, prefix: str, length: int) -> str:
        chars = self.fake.random_choices(elements=ALPHANUMERIC, length=length)
        return f"{prefix}-{''.join(chars)}"

    def _round(self, low: float, high: float, digits: int = 2) -> float:
        return round(self.fake.random.uniform(low, high), digits)

    def generate_financial(self, partition_key: str, padding: str, sequence_number: int) -> FinancialDocument:
        return FinancialDocument(
            partition_key=partition_key,
            sequence_number=sequence_number,
            data=padding,
            transaction_id=self._code("TXN", 12),
            account_number=self.fake.bban(),
            transaction_type=self.fake.random_element(self.TRANSACTION_TYPES),
            amount=self._round(10, 10000),
            currency=self.fake.currency_code(),
            merchant_name=self.fake.company(),
            category=self.fake.random_element(self.SPENDING_CATEGORIES),
            status=self.fake.random_element(self.TRANSACTION_STATUSES),
            description=self.fake.sentence(),
        )

    def generate_ecommerce(self, partition_key: str, padding: str, sequence_number: int) -> ECommerceDocument:
        quantity = self.fake.random_int(1, 10)
        price = self._round(10, 1000)
        product_name = " ".join([
            self.fake.random_element(self.PRODUCT_ADJECTIVES),
            self.fake.random_element(self.PRODUCT_MATERIALS),
            self.fake.random_element(self.PRODUCT_NAMES),
        ])
        return ECommerceDocument(
            partition_key=partition_key,
            sequence_number=sequence_number,
            data=padding,
            order_id=self._code("ORD", 10),
            customer_id=self._code("CUST", 8),
            customer_name=self.fake.name(),
            email=self.fake.email(),
            product_name=product_name,
            product_category=self.fake.random_element(self.DEPARTMENTS),
            quantity=quantity,
            price=price,
            total_amount=round(price * quantity, 2),
            shipping_address=self.fake.address().replace("\n", ", "),
            order_status=self.fake.random_element(self.ORDER_STATUSES),
            payment_method=self.fake.random_element(self.PAYMENT_METHODS),
        )

    def generate_healthcare(self, partition_key: str, padding: str, sequence_number: int) -> HealthcareDocument:
        medication_count = self.fake.random_int(1, 4)
        return HealthcareDocument(
            partition_key=partition_key,
            sequence_number=sequence_number,
            data=padding,
            patient_id=self._code("PAT", 8),
            patient_name=self.fake.name(),
            date_of_birth=self.fake.date_time_between(start_date="-88y", end_date="-18y", tzinfo=timezone.utc),
            gender=self.fake.random_element(self.GENDERS),
            diagnosis_code=self._code("ICD", 5),
            diagnosis=self.fake.random_element(self.DIAGNOSES),
            treatment_type=self.fake.random_element(self.TREATMENT_TYPES),
            physician_name=f"Dr. {self.fake.name()}",
            facility_name=f"{self.fake.city()} Medical Center",
            vital_signs=VitalSigns(
                heart_rate=self.fake.random_int(60, 100),
                blood_pressure=f"{self.fake.random_int(110, 140)}/{self.fake.random_int(70, 90)}",
                temperature=self._round(97.0, 99.5, 1),
                oxygen_saturation=self.fake.random_int(95, 100),
            ),
            medications=self.fake.random_elements(self.MEDICATIONS, length=medication_count, unique=True),
            status=self.fake.random_element(self.PATIENT_STATUSES),
        )

    def generate_iot(self, partition_key: str, padding: str, sequence_number: int) -> IoTDocument:
        return IoTDocument(
            partition_key=partition_key,
            sequence_number=sequence_number,
            data=padding,
            device_id=self._code("IOT", 12),
            device_type=self.fake.random_element(self.DEVICE_TYPES),
            location=Location(
                latitude=float(self.fake.latitude()),
                longitude=float(self.fake.longitude()),
                city=self.fake.city(),
                country=self.fake.country(),
            ),
            temperature=self._round(15.0, 35.0),
            humidity=self._round(30.0, 90.0),
            pressure=self._round(980.0, 1050.0),
            battery_level=self.fake.random_int(0, 100),
            signal_strength=self.fake.random_int(-100, -30),
            status=self.fake.random_element(self.DEVICE_STATUSES),
            firmware=f"v{self.fake.random_int(1, 3)}.{self.fake.random_int(0, 9)}.{self.fake.random_int(0, 99)}",
            sensor_readings={
                "vibration": self._round(0.0, 10.0),
                "noise": self._round(30.0, 100.0),
                "light": self._round(0.0, 1000.0),
            },
        )

    def generate_generic(self, partition_key: str, padding: str, sequence_number: int,
                         strategy: WorkloadStrategy = WorkloadStrategy.SEQUENTIAL) -> GenericDocument:
        return GenericDocument(
            partition_key=partition_key,
            sequence_number=sequence_number,
            data=padding,
            workload_type=strategy.value,
        )


def create_workload_generator(fake: Optional[Faker] = None) -> WorkloadGenerator:
    """Create a workload generator with the given fake value provider"""
    return WorkloadGenerator(fake)
