from dataclasses import dataclass


# Values reported by CursorIterator.value_index() when no slot is readable
NOT_STARTED:int = -2
EXHAUSTED:int = -1


@dataclass(frozen=True)
class NotStarted:
    """Before the first value. [declared] is True once the transaction is open and the cursor declared,
    i.e. only the first FETCH is pending (it timed out)."""

    declared:bool = False

    @property
    def index(self) -> int:
        return NOT_STARTED


@dataclass(frozen=True)
class Active:
    """A batch of [filled] rows is in the buffer and [position] is the slot being read."""

    position:int
    filled:int

    @property
    def index(self) -> int:
        return self.position

    def has_buffered_next(self) -> bool:
        """Returns True if the next value is already in the buffer (no fetch needed)."""
        return self.position + 1 < self.filled

    def step(self) -> "Active":
        return Active(self.position + 1, self.filled)


@dataclass(frozen=True)
class Exhausted:
    """Terminal: the cursor is drained, the iterator failed fatally, or it was closed."""

    @property
    def index(self) -> int:
        return EXHAUSTED


IteratorState = NotStarted | Active | Exhausted
