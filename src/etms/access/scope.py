from __future__ import annotations

from dataclasses import dataclass, replace
from typing import FrozenSet, Iterable, Optional


@dataclass(frozen=True)
class Scope:
    """Which records a caller may see.

    A record matches when its owner is in ``employee_ids`` (``None`` means
    every owner) or the caller authored it (``authored_by``). An explicit
    ``narrowed_to`` filter is AND-ed on top and never widens the scope.
    """

    employee_ids: Optional[FrozenSet[int]] = None
    authored_by: Optional[int] = None
    narrowed_to: Optional[int] = None

    @property
    def unrestricted(self) -> bool:
        return self.employee_ids is None

    @classmethod
    def everyone(cls) -> "Scope":
        return cls()

    @classmethod
    def nobody(cls) -> "Scope":
        return cls(employee_ids=frozenset())

    @classmethod
    def of(cls, employee_ids: Iterable[int], *, authored_by: Optional[int] = None) -> "Scope":
        return cls(employee_ids=frozenset(int(i) for i in employee_ids), authored_by=authored_by)

    def narrow(self, employee_id: Optional[int]) -> "Scope":
        if employee_id is None:
            return self
        return replace(self, narrowed_to=int(employee_id))

    def matches(self, owner_ids: Iterable[int], author_id: Optional[int] = None) -> bool:
        owners = {int(o) for o in owner_ids if o is not None}
        if self.narrowed_to is not None and self.narrowed_to not in owners:
            return False
        if self.unrestricted:
            return True
        if owners & self.employee_ids:
            return True
        return self.authored_by is not None and author_id is not None and int(author_id) == self.authored_by
