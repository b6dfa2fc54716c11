from __future__ import annotations
import dataclasses
from typing import TYPE_CHECKING, Any, Iterator, Mapping

import pandas as pd

# NOTE: only for type hints (classes imports utils)
if TYPE_CHECKING:
    from ..classes.cursor_iterator import CursorIterator


def slot_as_record(slot:Any) -> dict[str, Any]:
    """Copies a buffer slot into a new dict (column/attribute name -> value)."""

    # Dict-like slot
    if isinstance(slot, Mapping): return dict(slot)

    # Dataclass slot
    # NOTE: shallow copy on purpose, asdict() would deep copy every value
    if dataclasses.is_dataclass(slot):
        return {f.name: getattr(slot, f.name) for f in dataclasses.fields(slot)}

    # Plain object with __dict__ and/or __slots__
    record:dict[str, Any] = dict(getattr(slot, "__dict__", {}))
    for name in getattr(type(slot), "__slots__", ()):
        if hasattr(slot, name): record[name] = getattr(slot, name)
    return record


def iter_dataframes(iterator:CursorIterator, columns:list[str]|None=None) -> Iterator[pd.DataFrame]:
    """Advances [iterator] to the end and yields one DataFrame per fetched batch.

        NOTE:
            - Rows are copied out of the buffer, so the yielded DataFrames stay valid after the next refill
            - A new batch is detected by the value index going back to 0
            - The iterator's error (if any) is raised once the iterator stops
    """

    # Init vars
    records:list[dict[str, Any]] = []

    while iterator.advance():
        index:int = iterator.value_index()

        # A refill happened: hand out the previous batch
        if index == 0 and records:
            yield pd.DataFrame.from_records(records, columns=columns)
            records = []

        records.append(slot_as_record(iterator.values[index]))

    # Last batch
    if records:
        yield pd.DataFrame.from_records(records, columns=columns)

    # Surface failures (advance() only returns False)
    error = iterator.error()
    if error is not None:
        raise error
