"""
Check results for the import stages.

Every check returns either ``Success`` carrying a value or ``Failure`` carrying
a user-facing message. Stages chain checks by returning the first failure.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union


class ErrorKind(Enum):
    """Why an import was rejected"""
    COLLISION = "collision"                    # already exists in the store
    DUPLICATE = "duplicate"                    # repeated within the batch
    MISSING_REFERENCE = "missing_reference"    # cross-reference not in the batch
    INVALID_VALUE = "invalid_value"            # malformed number or timestamp
    CONSTRAINT_VIOLATION = "constraint_violation"


@dataclass(frozen=True)
class Success:
    value: Any = None

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    stage: Optional[str] = None

    @property
    def ok(self) -> bool:
        return False

    def in_stage(self, stage: str) -> 'Failure':
        """Copy of this failure scoped to a stage"""
        return Failure(self.kind, self.message, stage)


Result = Union[Success, Failure]


def find_duplicates(keys: Iterable[Any]) -> List[Any]:
    """
    Keys occurring more than once, each reported once, in the order of
    their first occurrence.
    """
    counts: Dict[Any, int] = {}
    for key in keys:
        counts[key] = counts.get(key, 0) + 1
    return [key for key, count in counts.items() if count > 1]


@dataclass
class ImportResult:
    """Outcome of one data import call"""
    failure: Optional[Failure] = None
    warnings: List[str] = field(default_factory=list)
    counts: Dict[str, int] = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.failure is None

    @property
    def message(self) -> Optional[str]:
        return self.failure.message if self.failure else None
