import dataclasses
from typing import Any, Callable, Mapping, MutableMapping

from .connector import Row


# A decoder writes one row into one pre-allocated buffer slot
RowDecoder = Callable[[Row, Any], None]


def is_addressable(slot:Any) -> bool:
    """Returns True if the given slot can be written in place (mutable mapping, mutable dataclass, or plain object)."""

    # Base case: classes are never slots
    if isinstance(slot, type): return False

    # Dict-like slots are updated by key
    if isinstance(slot, MutableMapping): return True

    # Frozen dataclasses can't be assigned to
    if dataclasses.is_dataclass(slot):
        return not slot.__dataclass_params__.frozen

    # Plain objects need a __dict__ or declared __slots__
    # NOTE: builtins like int/str/tuple/None have neither
    return hasattr(slot, "__dict__") or bool(getattr(type(slot), "__slots__", ()))


def _slot_names(slot:Any) -> set[str]:
    """Returns the names declared in __slots__ across the MRO of [slot]'s class (assigned or not)."""
    names:set[str] = set()
    for klass in type(slot).__mro__:
        declared = klass.__dict__.get("__slots__", ())
        if isinstance(declared, str): declared = (declared,)
        names.update(declared)
    return names


def _field_names(slot:Any) -> dict[str, str]:
    """Maps column name -> attribute name for a dataclass slot. A field can rename its column with metadata={"db": "<column>"}."""
    return {
        f.metadata.get("db", f.name): f.name
        for f in dataclasses.fields(slot)
        if f.metadata.get("db", f.name) != "-"
    }


def scan_row(row:Row, slot:Any) -> None:
    """Default decoder: copies the columns of [row] into [slot] by column name.

        NOTE:
            - Mapping slots receive every column of the row (keys not in the row are left untouched)
            - Dataclass slots must have a field (or db tag) for every column, otherwise a ValueError is raised
            - Other objects must already have an attribute for every column, otherwise a ValueError is raised
    """

    # Rows have to carry their column names
    if not isinstance(row, Mapping):
        raise TypeError(f"rows must be mappings of column name to value, got {type(row).__name__}")

    # DICT-LIKE SLOT
    if isinstance(slot, MutableMapping):
        slot.update(row)
        return

    # DATACLASS SLOT
    if dataclasses.is_dataclass(slot):
        fields:dict[str, str] = _field_names(slot)
        for column, value in row.items():
            if column not in fields:
                raise ValueError(f"column {column!r}: no corresponding field found in {type(slot).__name__}")
            setattr(slot, fields[column], value)
        return

    # PLAIN OBJECT SLOT
    # NOTE: an unassigned __slots__ entry has no attribute yet, so check the declared names too
    slot_names:set[str] = _slot_names(slot)
    for column, value in row.items():
        if not hasattr(slot, column) and column not in slot_names:
            raise ValueError(f"column {column!r}: no corresponding attribute found in {type(slot).__name__}")
        setattr(slot, column, value)
