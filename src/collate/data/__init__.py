"""Data layer seams — records, collaborator protocols, and in-memory stand-ins."""

from collate.data.loader import load_records, load_store
from collate.data.memory import MemorySink, MemoryStore
from collate.data.protocols import DataQuery, PageSink
from collate.data.records import Record, RecordChange

__all__ = [
    "DataQuery",
    "MemorySink",
    "MemoryStore",
    "PageSink",
    "Record",
    "RecordChange",
    "load_records",
    "load_store",
]
