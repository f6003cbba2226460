"""
Allocation Store

Sparse (employee_id, project_id) -> percentage relation. It is the single
source of truth for how an employee's time is split across projects.

A stored value is always an int in 1..100. Zero and absence are the same
thing: setting 0 deletes the key.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Optional, Tuple

from rs_credit.core.exceptions import ValidationError
from rs_credit.schemas.timesheet import AllocationEntry

logger = logging.getLogger(__name__)

AllocationKey = Tuple[str, str]

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


def normalize_percentage(value: Any) -> int:
    """
    Coerce raw input to an int in [0, 100].

    Numbers are truncated toward zero, strings keep their leading integer
    ("42.7" -> 42, "30%" -> 30). Anything non-numeric becomes 0.
    """
    if value is None or isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        if isinstance(value, float) and (math.isnan(value) or math.isinf(value)):
            return 0
        number = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return 0
        number = int(match.group(1))
    return max(0, min(100, number))


class AllocationStore:
    def __init__(self, entries: Optional[Iterable[AllocationEntry]] = None):
        self._data: Dict[AllocationKey, int] = {}
        for entry in entries or []:
            self.set(entry.employee_id, entry.project_id, entry.percentage)

    def __len__(self) -> int:
        return len(self._data)

    def __contains__(self, key: AllocationKey) -> bool:
        return key in self._data

    def get(self, employee_id: str, project_id: str) -> int:
        return self._data.get((employee_id, project_id), 0)

    def set(self, employee_id: str, project_id: str, percentage: Any) -> int:
        """Store a clamped percentage; returns the value actually kept."""
        value = normalize_percentage(percentage)
        key = (employee_id, project_id)
        if value == 0:
            self._data.pop(key, None)
        else:
            self._data[key] = value
        return value

    def for_employee(self, employee_id: str) -> Dict[str, int]:
        return {p: v for (e, p), v in self._data.items() if e == employee_id}

    def for_project(self, project_id: str) -> Dict[str, int]:
        return {e: v for (e, p), v in self._data.items() if p == project_id}

    def distribute_equally(self, employee_id: str, project_ids: List[str]) -> Dict[str, int]:
        """
        Split 100% across the given projects, in order.

        Each project gets floor(100 / n); the remainder goes to the last one
        so the sum is exactly 100 (3 projects -> 33, 33, 34).
        """
        if not project_ids:
            raise ValidationError("No projects to distribute across", details={"employee_id": employee_id})

        share = 100 // len(project_ids)
        remainder = 100 - share * len(project_ids)
        result: Dict[str, int] = {}
        for index, project_id in enumerate(project_ids):
            value = share + remainder if index == len(project_ids) - 1 else share
            result[project_id] = self.set(employee_id, project_id, value)
        logger.debug(f"Distributed {employee_id} across {len(project_ids)} projects")
        return result

    def clear_for_employee(self, employee_id: str) -> int:
        return self._remove_where(lambda key: key[0] == employee_id)

    def clear_for_project(self, project_id: str) -> int:
        return self._remove_where(lambda key: key[1] == project_id)

    def clear_all(self) -> int:
        removed = len(self._data)
        self._data.clear()
        return removed

    def _remove_where(self, predicate) -> int:
        keys = [key for key in self._data if predicate(key)]
        for key in keys:
            del self._data[key]
        return len(keys)

    def entries(self) -> List[AllocationEntry]:
        return [
            AllocationEntry(employee_id=e, project_id=p, percentage=v)
            for (e, p), v in sorted(self._data.items())
        ]

    def snapshot(self) -> Dict[AllocationKey, int]:
        return dict(self._data)

    def restore(self, snapshot: Dict[AllocationKey, int]) -> None:
        self._data = dict(snapshot)
