from dataclasses import dataclass

import pandas as pd
import pytest

from pg_cursor_iterator import CursorIterator, iter_dataframes, slot_as_record
from pg_cursor_iterator.exceptions import FetchError


@dataclass
class User:
    id: int = 0
    name: str = ""


class Slotted:
    __slots__ = ("id", "name")

    def __init__(self):
        self.id = 0


def test_slot_as_record():
    """Testing slot_as_record() for dicts, dataclasses and slotted objects."""
    source = {"id": 1}
    record = slot_as_record(source)
    assert record == {"id": 1}
    assert record is not source

    assert slot_as_record(User(2, "Alice")) == {"id": 2, "name": "Alice"}

    # Unset slots are skipped
    assert slot_as_record(Slotted()) == {"id": 0}


@pytest.mark.parametrize("size,expected_lengths", [(2, [2, 2, 1]), (5, [5]), (10, [5]), (1, [1, 1, 1, 1, 1])])
def test_iter_dataframes_one_frame_per_batch(size, expected_lengths, make_connector, users):
    """Testing that iter_dataframes() yields one DataFrame per FETCH and copies the rows out of the buffer."""
    values = [User() for _ in range(size)]
    iterator = CursorIterator(make_connector(), values, 60, "SELECT * FROM users")

    frames = list(iter_dataframes(iterator))

    assert [len(df) for df in frames] == expected_lengths
    combined = pd.concat(frames, ignore_index=True)
    assert combined.to_dict(orient="records") == users
    assert iterator.exhausted


def test_iter_dataframes_columns(make_connector):
    """Testing that [columns] selects and orders the DataFrame columns."""
    values = [{} for _ in range(10)]
    iterator = CursorIterator(make_connector(), values, 60, "SELECT * FROM users")

    (df,) = list(iter_dataframes(iterator, columns=["name", "id"]))
    assert list(df.columns) == ["name", "id"]
    assert list(df["name"]) == ["Joe", "Alice", "Bob", "Mike", "Maria"]


def test_iter_dataframes_empty(make_connector):
    """Testing that an empty result yields nothing."""
    values = [{} for _ in range(3)]
    iterator = CursorIterator(make_connector([]), values, 60, "SELECT * FROM users")
    assert list(iter_dataframes(iterator)) == []


def test_iter_dataframes_raises_the_error(make_connector):
    """Testing that the iterator's error is raised after the batches read so far."""
    connector = make_connector(failures={"query": [None, RuntimeError("connection lost")]})
    values = [{} for _ in range(2)]
    iterator = CursorIterator(connector, values, 60, "SELECT * FROM users")

    frames = []
    with pytest.raises(FetchError):
        for df in iter_dataframes(iterator):
            frames.append(df)

    assert [len(df) for df in frames] == [2]
