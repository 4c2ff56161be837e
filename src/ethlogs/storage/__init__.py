"""Storage components for exporting decoded events.

This package provides:
- EventTable: dynamic columnar buffer of decoded events
- write_parquet / write_jsonl: atomic file exports
"""

from ethlogs.storage.export import EventTable, event_to_dict, render_value, write_jsonl, write_parquet

__all__ = [
    "EventTable",
    "event_to_dict",
    "render_value",
    "write_jsonl",
    "write_parquet",
]
