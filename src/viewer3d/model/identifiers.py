"""
Identifier Generator
Issues names for scene objects that never repeat within a session.
"""
import itertools
import uuid


class IdGenerator:
    """
    Produces globally unique object names.

    Each id combines random uuid4 entropy with a per-generator counter, so two
    ids from the same generator can never be equal.
    """
    def __init__(self, prefix: str = "") -> None:
        self.prefix = prefix
        self._counter = itertools.count(1)

    def next(self) -> str:
        return f"{self.prefix}{uuid.uuid4().hex[:12]}-{next(self._counter)}"
