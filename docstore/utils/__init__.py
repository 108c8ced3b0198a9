"""
Utilities
"""

from docstore.utils.datetime import (
    utc_now,
    ensure_utc,
    to_iso,
    epoch_millis,
)
from docstore.utils.serialization import to_jsonable

__all__ = [
    "utc_now",
    "ensure_utc",
    "to_iso",
    "epoch_millis",
    "to_jsonable",
]
