"""
JSON rendering of stored documents
"""

from datetime import datetime
from typing import Any

from bson import ObjectId
from fastapi.encoders import jsonable_encoder

from docstore.utils.datetime import to_iso


_ENCODERS = {
    ObjectId: str,
    datetime: to_iso,
}


def to_jsonable(document: Any) -> Any:
    """ObjectId → hex string, datetime → ISO 8601, recursively"""
    return jsonable_encoder(document, custom_encoder=_ENCODERS)
