"""Household food inventory with expiry reminders and product memory."""

from .clock import Clock, FixedClock
from .config import FridgeConfig, ReminderPreferences, load_config
from .errors import (
    DispatchUnavailable,
    FridgeError,
    InvalidOperation,
    InvalidQuantity,
    NotFound,
)
from .lifecycle import (
    BatchLifecycle,
    BatchPatch,
    ConsumeResult,
    OpenResult,
    PendingOpen,
    PendingThaw,
)
from .memory import FrequencyMemory
from .models import (
    BatchInput,
    BatchStatus,
    FoodBatch,
    FrequentItem,
    MeasureUnit,
    ShoppingEntry,
    StorageLocation,
    is_expired,
    normalize_name,
)
from .mood import Mood, classify
from .reminders import Reminder, ReminderScheduler, compute_reminders

__all__ = [
    "Clock",
    "FixedClock",
    "FridgeConfig",
    "ReminderPreferences",
    "load_config",
    "FridgeError",
    "InvalidQuantity",
    "InvalidOperation",
    "NotFound",
    "DispatchUnavailable",
    "BatchLifecycle",
    "BatchPatch",
    "ConsumeResult",
    "OpenResult",
    "PendingOpen",
    "PendingThaw",
    "FrequencyMemory",
    "BatchInput",
    "BatchStatus",
    "FoodBatch",
    "FrequentItem",
    "MeasureUnit",
    "ShoppingEntry",
    "StorageLocation",
    "is_expired",
    "normalize_name",
    "Mood",
    "classify",
    "Reminder",
    "ReminderScheduler",
    "compute_reminders",
]
