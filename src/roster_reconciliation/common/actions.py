from __future__ import annotations

import logging
from contextlib import contextmanager

from ..core.exceptions import ActionFailedError, StoreUnavailableError

logger = logging.getLogger(__name__)


@contextmanager
def store_action(action: str):
    """Turn a store failure inside a write workflow into a failure naming the action."""
    try:
        yield
    except StoreUnavailableError as e:
        logger.warning("Store failure while trying to %s: %s", action, e)
        raise ActionFailedError(action, e) from e
