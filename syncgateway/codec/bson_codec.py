"""BSON wire codec for document streams and identifier sets.

A document stream is a plain concatenation of BSON documents; every BSON
document starts with its own int32 length, so the stream needs no extra
framing. Identifier sets travel in a URL path segment as URL-safe base64 of a
single BSON document whose values are ObjectIds. A path segment can never
carry "/", so clients must use the URL-safe alphabet there.
"""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime
from typing import Any, Iterable, List

import bson
from bson import ObjectId
from bson.errors import BSONError, InvalidDocument

from syncgateway.core.exceptions import DocumentDecodeError
from syncgateway.models.document import Document

logger = logging.getLogger(__name__)

_SCALAR_TYPES = (type(None), bool, int, float, str, bytes, ObjectId, datetime)


def encode_many(documents: Iterable[Document]) -> bytes:
    """Encode ``documents`` as one binary blob, preserving order."""

    try:
        return b"".join(bson.encode(document) for document in documents)
    except InvalidDocument as exc:
        raise ValueError(f"Document cannot be encoded as BSON: {exc}") from exc


def decode_many(data: bytes) -> List[Document]:
    """Decode a concatenation of BSON documents.

    An empty input decodes to an empty list. Any malformed or truncated frame,
    or a value outside the supported type set, fails the whole payload.
    """

    if not data:
        return []
    try:
        documents = bson.decode_all(data)
    except (BSONError, ValueError) as exc:
        raise DocumentDecodeError(f"Invalid document stream: {exc}") from exc

    for document in documents:
        _check_value(document)
    return documents


def decode_id_set(text: str) -> List[ObjectId]:
    """Decode a base64 id-set payload into a de-duplicated identifier list.

    Keys of the outer document are ignored. Order of first occurrence is kept.
    """

    raw = _b64decode(text)
    try:
        payload = bson.decode(raw)
    except (BSONError, ValueError) as exc:
        raise DocumentDecodeError(f"Id set is not a document: {exc}") from exc
    if not isinstance(payload, dict):
        raise DocumentDecodeError("Id set is not a document")

    identifiers: List[ObjectId] = []
    seen = set()
    for value in payload.values():
        if not isinstance(value, ObjectId):
            logger.warning("Received id set containing a non-ObjectId value of type %s", type(value).__name__)
            raise DocumentDecodeError("Id set contains a non-identifier value")
        if value not in seen:
            seen.add(value)
            identifiers.append(value)
    return identifiers


def encode_id_set(identifiers: Iterable[ObjectId]) -> str:
    """Encode identifiers as URL-safe base64, the inverse of ``decode_id_set``."""

    payload = {str(index): identifier for index, identifier in enumerate(identifiers)}
    return base64.urlsafe_b64encode(bson.encode(payload)).decode("ascii").rstrip("=")


def _b64decode(text: str) -> bytes:
    # "+" from the standard alphabet is tolerated; padding is optional.
    normalized = text.strip().replace("+", "-").replace("/", "_")
    normalized += "=" * (-len(normalized) % 4)
    try:
        return base64.urlsafe_b64decode(normalized.encode("ascii"))
    except (binascii.Error, UnicodeEncodeError, ValueError) as exc:
        raise DocumentDecodeError(f"Id set is not valid base64: {exc}") from exc


def _check_value(value: Any) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            if not isinstance(key, str):
                raise DocumentDecodeError("Document keys must be strings")
            _check_value(item)
    elif isinstance(value, list):
        for item in value:
            _check_value(item)
    elif not isinstance(value, _SCALAR_TYPES):
        raise DocumentDecodeError(f"Unsupported document value type: {type(value).__name__}")


__all__ = ["decode_id_set", "decode_many", "encode_id_set", "encode_many"]
