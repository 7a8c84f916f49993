# audio-guide-client: ports (Protocol interfaces)
# Abstract interfaces for adapters; no implementations here

from audioguide.core.ports.cache import (
    CachePort,
    CacheStorageError,
    CacheStoragePort,
    QuotaExceededError,
)
from audioguide.core.ports.clock import ClockPort
from audioguide.core.ports.network import (
    FetchRequest,
    FetchResponse,
    NetworkError,
    NetworkPort,
)
from audioguide.core.ports.notifications import NotificationSenderPort, SendResult
from audioguide.core.ports.storage import (
    CorruptRecordError,
    KeyValueStorePort,
    StorageError,
)
from audioguide.core.ports.validation import (
    FieldValidatorPort,
    ValidationResult,
    merge_results,
)

__all__ = [
    # Cache storage
    "CachePort",
    "CacheStorageError",
    "CacheStoragePort",
    "QuotaExceededError",
    # Clock
    "ClockPort",
    # Network
    "FetchRequest",
    "FetchResponse",
    "NetworkError",
    "NetworkPort",
    # Notifications
    "NotificationSenderPort",
    "SendResult",
    # Key/value storage
    "CorruptRecordError",
    "KeyValueStorePort",
    "StorageError",
    # Validation
    "FieldValidatorPort",
    "ValidationResult",
    "merge_results",
]
