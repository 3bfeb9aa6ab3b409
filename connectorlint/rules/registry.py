from __future__ import annotations

from typing import Callable

from ..core.config import Settings
from ..core.models import FileSet, Verdict

Predicate = Callable[[FileSet, Settings], Verdict]

_PREDICATES: dict[str, Predicate] = {}


def predicate(rule_id: str) -> Callable[[Predicate], Predicate]:
    """Register fn as the check behind rule_id in the bundled catalog."""
    def register(fn: Predicate) -> Predicate:
        if rule_id in _PREDICATES:
            raise ValueError(f"predicate for {rule_id} registered twice")
        _PREDICATES[rule_id] = fn
        return fn
    return register


def registered_predicates() -> dict[str, Predicate]:
    # Importing the rule modules populates the registry.
    from . import crosscutting, destination, identity, source  # noqa: F401
    return dict(_PREDICATES)
