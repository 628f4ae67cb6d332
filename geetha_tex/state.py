"""The application state container.

``AppStore`` is the single owner of settings, batches, batch types, theme and
the transient notification. It mirrors the persisted values in memory, is the
only code that writes them back, and tells subscribers which part changed
after every mutation. Routes get the instance through the ``get_store``
dependency rather than a module global.
"""

import functools
import logging
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple
from uuid import uuid4
from pydantic import ValidationError as PydanticValidationError
from geetha_tex import storage
from geetha_tex.ai_summary import SummaryTask
from geetha_tex.config import Config
from geetha_tex.derive import aggregate_by_machine, derive_all, monthly_report
from geetha_tex.domain import (
    DEFAULT_BATCH_COLOR,
    Batch,
    BatchInput,
    BatchStatus,
    BatchType,
    BatchTypeInput,
    CalculatedBatch,
    MachineBucket,
    MonthlyReport,
    Settings,
    Theme,
)
from geetha_tex.exports import backup_document, parse_backup
from geetha_tex.seed import demo_batch_types, demo_batches

logger = logging.getLogger(__name__)


class StoreError(Exception):
    pass


class ValidationError(StoreError):
    """Rejected input, tied to the form field that has to be corrected."""

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field
        self.message = message


class NotFoundError(StoreError):
    def __init__(self, kind: str, item_id: str):
        super().__init__(f"{kind} {item_id} not found")
        self.kind = kind
        self.item_id = item_id


class SetupRequired(StoreError):
    pass


def new_id() -> str:
    return uuid4().hex


def synchronized(method):
    """Run a store method under the store lock; routes call in from a threadpool."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


class AppStore:
    def __init__(
        self,
        kv: storage.KeyValueStore,
        clock: Callable[[], float] = time.monotonic,
        notification_seconds: float = Config.NOTIFICATION_SECONDS,
        id_factory: Callable[[], str] = new_id,
    ):
        self.kv = kv
        self.clock = clock
        self.notification_seconds = notification_seconds
        self.id_factory = id_factory
        self.listeners: List[Callable[[str], None]] = []
        self.summaries: Dict[Tuple[int, int], SummaryTask] = {}
        self._notification: Optional[str] = None
        self._notified_at = 0.0
        self._lock = threading.RLock()

        self.settings = self._load_settings()
        self.batches: List[Batch] = self._load_list(storage.BATCHES, Batch)
        self.batch_types: List[BatchType] = self._load_list(storage.BATCH_TYPES, BatchType)
        self.theme = self._load_theme()
        self.demo_seeded = bool(self.kv.get(storage.DEMO_SEEDED, False))

    # ----- loading (shape drift is defaulted, never migrated) -----

    def _load_settings(self) -> Optional[Settings]:
        raw = self.kv.get(storage.SETTINGS)
        if raw is None:
            return None
        try:
            return Settings.model_validate(raw)
        except PydanticValidationError:
            logger.warning("Stored settings are malformed; starting in setup mode")
            return None

    def _load_list(self, key, model):
        raw = self.kv.get(key, [])
        if not isinstance(raw, list):
            logger.warning("Stored %s is not a list; starting empty", key)
            return []
        items = []
        for entry in raw:
            try:
                items.append(model.model_validate(entry))
            except PydanticValidationError:
                logger.warning("Dropping malformed %s entry: %r", key, entry)
        return items

    def _load_theme(self) -> Theme:
        try:
            return Theme(self.kv.get(storage.THEME, Theme.LIGHT.value))
        except ValueError:
            return Theme.LIGHT

    # ----- persistence & change broadcast -----

    def _save_batches(self):
        self.kv.set(storage.BATCHES, [b.model_dump(by_alias=True, mode="json") for b in self.batches])
        self._changed("batches")

    def _save_batch_types(self):
        self.kv.set(storage.BATCH_TYPES, [bt.model_dump(by_alias=True, mode="json") for bt in self.batch_types])
        self._changed("batch-types")

    def _save_settings(self):
        value = self.settings.model_dump(by_alias=True) if self.settings else None
        self.kv.set(storage.SETTINGS, value)
        self._changed("settings")

    def _changed(self, topic: str):
        for listener in list(self.listeners):
            try:
                listener(topic)
            except Exception:
                logger.exception("Listener failed on %r change", topic)

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        self.listeners.append(listener)

        def unsubscribe():
            if listener in self.listeners:
                self.listeners.remove(listener)

        return unsubscribe

    # ----- notification -----

    @synchronized
    def notify(self, message: Optional[str]):
        """Show ``message``; replaces any pending one and restarts the window."""
        self._notification = message
        self._notified_at = self.clock()
        self._changed("notification")

    @property
    def notification(self) -> Optional[str]:
        if self._notification and self.clock() - self._notified_at >= self.notification_seconds:
            self._notification = None
        return self._notification

    # ----- lookups -----

    def _index(self, items, item_id: str, kind: str) -> int:
        for i, item in enumerate(items):
            if item.id == item_id:
                return i
        raise NotFoundError(kind, item_id)

    def get_batch(self, batch_id: str) -> Batch:
        return self.batches[self._index(self.batches, batch_id, "Batch")]

    def get_batch_type(self, batch_type_id: str) -> BatchType:
        return self.batch_types[self._index(self.batch_types, batch_type_id, "Batch type")]

    def batch_type_color(self, batch_number: str) -> str:
        number = batch_number.strip().upper()
        for bt in self.batch_types:
            if bt.batch_number.upper() == number:
                return bt.color
        return DEFAULT_BATCH_COLOR

    def require_settings(self) -> Settings:
        if self.settings is None:
            raise SetupRequired("Complete the setup wizard first")
        return self.settings

    def _check_machine(self, machine_number: int):
        if self.settings and not 1 <= machine_number <= self.settings.number_of_machines:
            raise ValidationError(
                "machineNumber",
                f"Machine must be between 1 and {self.settings.number_of_machines}.",
            )

    # ----- batches -----

    @synchronized
    def add_batch(self, data: BatchInput) -> Batch:
        self._check_machine(data.machine_number)
        fields = data.model_dump()
        fields["batch_number"] = data.batch_number.upper()
        fields["color"] = data.color or self.batch_type_color(fields["batch_number"])
        batch = Batch(**fields, id=self.id_factory(), status=BatchStatus.IN_PROGRESS)

        # Most recent first
        self.batches.insert(0, batch)
        self._save_batches()
        logger.info("Added batch %s on machine %s", batch.batch_number, batch.machine_number)
        self.notify("New batch added successfully!")
        return batch

    @synchronized
    def update_batch(self, batch: Batch) -> Batch:
        index = self._index(self.batches, batch.id, "Batch")
        existing = self.batches[index]
        self._check_machine(batch.machine_number)

        number = batch.batch_number.upper()
        if number != existing.batch_number.upper() and any(
            b.batch_number.upper() == number for b in self.batches
        ):
            raise ValidationError("batchNumber", "Batch number must be unique.")

        updated = batch.model_copy(update={"batch_number": number, "status": existing.status})
        self.batches[index] = updated
        self._save_batches()
        logger.info("Updated batch %s (%s)", updated.batch_number, updated.id)
        self.notify(f"Batch {updated.batch_number} updated!")
        return updated

    @synchronized
    def delete_batch(self, batch_id: str):
        index = self._index(self.batches, batch_id, "Batch")
        removed = self.batches.pop(index)
        self._save_batches()
        logger.info("Deleted batch %s (%s)", removed.batch_number, removed.id)
        self.notify("Batch deleted successfully!")

    @synchronized
    def calculated_batches(self) -> List[CalculatedBatch]:
        return derive_all(self.batches)

    def machine_buckets(self) -> List[MachineBucket]:
        settings = self.require_settings()
        return aggregate_by_machine(self.calculated_batches(), settings.number_of_machines)

    def report(self, year: int, month: int) -> MonthlyReport:
        return monthly_report(self.calculated_batches(), year, month)

    # ----- batch types -----

    def _check_batch_type_number(self, number: str, exclude_id: str = None):
        if not number:
            raise ValidationError("batchNumber", "Batch number cannot be empty.")
        if any(bt.batch_number.upper() == number and bt.id != exclude_id for bt in self.batch_types):
            raise ValidationError("batchNumber", "Batch number must be unique.")

    @synchronized
    def add_batch_type(self, data: BatchTypeInput) -> BatchType:
        number = data.batch_number.strip().upper()
        self._check_batch_type_number(number)
        batch_type = BatchType(id=self.id_factory(), batch_number=number, color=data.color)
        self.batch_types.append(batch_type)
        self._save_batch_types()
        self.notify("Batch type added successfully!")
        return batch_type

    @synchronized
    def update_batch_type(self, batch_type: BatchType) -> BatchType:
        # Called on every colour picker move, so no notification here;
        # confirm_batch_type_color sends one when the user is done.
        index = self._index(self.batch_types, batch_type.id, "Batch type")
        number = batch_type.batch_number.strip().upper()
        self._check_batch_type_number(number, exclude_id=batch_type.id)
        updated = batch_type.model_copy(update={"batch_number": number})
        self.batch_types[index] = updated
        self._save_batch_types()
        return updated

    def confirm_batch_type_color(self, batch_type_id: str) -> BatchType:
        batch_type = self.get_batch_type(batch_type_id)
        self.notify(f"{batch_type.batch_number} color updated.")
        return batch_type

    @synchronized
    def delete_batch_type(self, batch_type_id: str):
        index = self._index(self.batch_types, batch_type_id, "Batch type")
        self.batch_types.pop(index)
        self._save_batch_types()
        self.notify("Batch type deleted successfully!")

    # ----- settings, setup, theme -----

    @synchronized
    def set_settings(self, settings: Optional[Settings]):
        """Replace settings wholesale; ``None`` sends the app back to setup."""
        self.settings = settings
        self._save_settings()

    @synchronized
    def update_settings(self, settings: Settings):
        self.set_settings(settings)
        self.notify("Company settings updated successfully!")

    @synchronized
    def complete_setup(self, settings: Settings, seed_demo: bool = True):
        self.set_settings(settings)
        if seed_demo:
            self.seed_demo_data()

    @synchronized
    def seed_demo_data(self) -> bool:
        """Load the demo set once per installation; returns False if it already ran.

        The persisted flag decides, not an empty batch list, so a user who
        deletes every batch does not get the demo data back.
        """
        if self.demo_seeded or self.settings is None:
            return False

        self.batches.extend(demo_batches(self.settings.number_of_machines))
        known = {bt.batch_number.upper() for bt in self.batch_types}
        self.batch_types.extend(bt for bt in demo_batch_types() if bt.batch_number not in known)
        self.demo_seeded = True
        self.kv.set(storage.DEMO_SEEDED, True)
        self._save_batches()
        self._save_batch_types()
        logger.info("Seeded demo data")
        return True

    @synchronized
    def reset(self):
        """Back to a fresh install: no settings, no data, demo set available again."""
        self.settings = None
        self.batches = []
        self.batch_types = []
        self.demo_seeded = False
        self.summaries.clear()
        self.kv.set(storage.DEMO_SEEDED, False)
        self._save_settings()
        self._save_batches()
        self._save_batch_types()
        logger.info("App data reset")

    @synchronized
    def toggle_theme(self) -> Theme:
        self.theme = Theme.DARK if self.theme == Theme.LIGHT else Theme.LIGHT
        self.kv.set(storage.THEME, self.theme.value)
        self._changed("theme")
        return self.theme

    # ----- backup -----

    @synchronized
    def backup(self, now=None) -> dict:
        return backup_document(self.require_settings(), self.batches, now)

    @synchronized
    def restore(self, payload: dict):
        try:
            backup = parse_backup(payload)
        except PydanticValidationError as e:
            raise ValidationError("backup", f"Backup file is not valid: {e.error_count()} error(s)") from e
        self.settings = backup.settings
        self.batches = list(backup.batches)
        self._save_settings()
        self._save_batches()
        self.notify("Data restored from backup!")

    # ----- AI summary -----

    @synchronized
    def summary_task(self, year: int, month: int) -> SummaryTask:
        return self.summaries.setdefault((year, month), SummaryTask())
