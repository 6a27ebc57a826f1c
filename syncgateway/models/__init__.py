from .document import ID_FIELD, MTIME_FIELD, Document, DocumentValue, has_identifier

__all__ = ["Document", "DocumentValue", "ID_FIELD", "MTIME_FIELD", "has_identifier"]
