import dataclasses
from dataclasses import dataclass
from typing import Any, Dict, Optional

VALIDATION = "validation"   # bad input, no model call made
EXTERNAL = "external"       # model unavailable or answered with garbage
EMPTY = "empty"             # call succeeded but produced nothing usable

ERROR_KINDS = (VALIDATION, EXTERNAL, EMPTY)


@dataclass(frozen=True)
class Ok:
    value: Any

    ok = True


@dataclass(frozen=True)
class Err:
    kind: str
    detail: str
    field: Optional[str] = None
    # whatever was produced before the failure, surfaced alongside the message
    partial: Dict[str, Any] = dataclasses.field(default_factory=dict)

    ok = False

    def __post_init__(self):
        if self.kind not in ERROR_KINDS:
            raise ValueError(f"unknown error kind: {self.kind}")
