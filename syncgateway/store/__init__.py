from .base import DocumentStore
from .clock import ModificationClock
from .memory import InMemoryDocumentStore

__all__ = ["DocumentStore", "InMemoryDocumentStore", "ModificationClock"]
