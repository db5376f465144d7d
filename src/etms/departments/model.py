from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Department:
    department_id: int
    name: str
    description: Optional[str] = None
    manager_id: Optional[int] = None
    budget: Optional[float] = None
    location: Optional[str] = None
    is_active: bool = True
    created_at: Optional[datetime] = None
