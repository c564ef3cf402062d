"""Per-run identifier sequences."""


class IdSequence:
    """
    Hands out dense, 1-based integer ids for one table.

    A generator run owns one sequence per table, so ids never leak between
    runs and never skip or repeat within a run.
    """

    def __init__(self, start: int = 1):
        self._start = start
        self._next = start

    def next_id(self) -> int:
        value = self._next
        self._next += 1
        return value

    @property
    def issued(self) -> int:
        """Number of ids handed out so far."""
        return self._next - self._start

    def __repr__(self):
        return f"IdSequence(next={self._next})"
