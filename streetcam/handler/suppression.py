"""
Per data type "don't ask again" gate for search failures.

Photo, detection and cluster searches each have an independent state.
While a type is in ``ASK`` its failures are offered to the user as a yes/no
prompt ("suppress further errors of this kind?"); once the user answers
yes the type moves to ``SUPPRESSED`` and its failures stay silent until the
preference is reset.
"""
from __future__ import annotations

import enum
import logging
from typing import Optional, Protocol

from ..model.entities import DataType

log = logging.getLogger(__name__)

# Data types whose failures can be prompted for
PROMPTABLE_TYPES = (DataType.PHOTO, DataType.DETECTION, DataType.CLUSTER)


class SuppressionState(enum.Enum):
    ASK = "ASK"
    SUPPRESSED = "SUPPRESSED"


class SuppressionStore(Protocol):
    def load_suppression_state(self, data_type: DataType) -> SuppressionState: ...

    def save_suppression_state(self, data_type: DataType, state: SuppressionState) -> None: ...


class ErrorPrompt(Protocol):
    def ask_suppress(self, data_type: DataType) -> bool:
        """Show a blocking yes/no prompt; True means suppress future errors."""
        ...


class ErrorSuppressionPolicy:
    """Suppression gate backed by the preference store."""

    def __init__(self, store: SuppressionStore):
        self._store = store

    def should_notify(self, data_type: DataType) -> bool:
        if data_type not in PROMPTABLE_TYPES:
            return False
        return self._store.load_suppression_state(data_type) is SuppressionState.ASK

    def record_user_choice(self, data_type: DataType, suppress_future: bool) -> None:
        state = SuppressionState.SUPPRESSED if suppress_future else SuppressionState.ASK
        self._store.save_suppression_state(data_type, state)
        log.info("%s search errors: %s", data_type.value.lower(), state.value)

    def notify_failure(self, data_type: DataType, prompt: Optional[ErrorPrompt]) -> bool:
        """Offer one prompt for a failed *data_type*; True when shown."""
        if prompt is None or not self.should_notify(data_type):
            return False
        self.record_user_choice(data_type, prompt.ask_suppress(data_type))
        return True
