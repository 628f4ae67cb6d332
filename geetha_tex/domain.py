"""Plain records shared by the store, the derivations and the routes.

Field names are snake_case in Python and camelCase on the wire and in
storage (``batchNumber``, ``meterValue``...), which is the layout existing
backups use.
"""

from datetime import date, datetime
from enum import Enum
from typing import Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

DEFAULT_BATCH_COLOR = "#f59e0b"
DEFAULT_BATCH_TYPE_COLOR = "#14b8a6"


class BatchStatus(str, Enum):
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    DELAYED = "Delayed"


class Theme(str, Enum):
    LIGHT = "light"
    DARK = "dark"


class Record(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        str_strip_whitespace=True,
    )


class Settings(Record):
    company_name: str = Field(min_length=1)
    number_of_machines: int = Field(ge=1)


class BatchTypeInput(Record):
    batch_number: str = Field(min_length=1)
    color: str = DEFAULT_BATCH_TYPE_COLOR


class BatchType(BatchTypeInput):
    id: str


class BatchInput(Record):
    batch_number: str = Field(min_length=1)
    machine_number: int = Field(ge=1)
    start_date: date
    end_date: date
    meter_value: float = Field(gt=0, allow_inf_nan=False)
    # Omitted: taken from the batch type with the same batch number
    color: Optional[str] = None
    name: str = ""


class Batch(BatchInput):
    id: str
    color: str = DEFAULT_BATCH_COLOR
    status: BatchStatus = BatchStatus.IN_PROGRESS


class CalculatedBatch(Batch):
    ftotal: int
    average: float


class MachineBucket(Record):
    machine_number: int
    batches: List[CalculatedBatch] = []
    latest_batch: Optional[CalculatedBatch] = None
    total_meter: float = 0.0
    total_ftotal: int = 0


class MonthTotals(Record):
    total_batches: int = 0
    total_meter: float = 0.0
    total_ftotal: int = 0


class TopMachine(Record):
    machine_number: int
    total_batches: int


class MonthlyReport(MonthTotals):
    month: str
    top_machine: Optional[TopMachine] = None
    status_counts: Dict[str, int] = {}


class Backup(Record):
    settings: Settings
    batches: List[Batch]
    backup_date: datetime
