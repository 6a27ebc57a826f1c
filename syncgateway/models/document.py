"""Document data model definitions.

Documents are schema-less ordered mappings. Values are restricted to the
closed set of BSON types listed in ``DocumentValue``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Union

from bson import ObjectId

ID_FIELD = "_id"
MTIME_FIELD = "_mtime"

DocumentValue = Union[
    None,
    bool,
    int,
    float,
    str,
    bytes,
    ObjectId,
    datetime,
    List["DocumentValue"],
    Dict[str, "DocumentValue"],
]
Document = Dict[str, DocumentValue]


def has_identifier(document: Document) -> bool:
    return document.get(ID_FIELD) is not None


__all__ = [
    "Document",
    "DocumentValue",
    "ID_FIELD",
    "MTIME_FIELD",
    "has_identifier",
]
