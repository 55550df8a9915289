"""Implementation phase table.

The phase table is an ordered mapping from phase key to display name. Its
order is the canonical traversal order used by every analytics component;
nothing in the engine infers or reorders phases from task data.
"""

from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional, Tuple


STANDARD_PHASES: Tuple[Tuple[str, str], ...] = (
    ("Phase 1", "Phase 1: Contract & Initial Setup"),
    ("Phase 2", "Phase 2: Billing, CLIA & Hiring"),
    ("Phase 3", "Phase 3: Tech Infrastructure & LIS Integration"),
    ("Phase 4", "Phase 4: Inventory Forecasting & Procurement"),
    ("Phase 5", "Phase 5: Supply Orders & Logistics"),
    ("Phase 6", "Phase 6: Onboarding & Welcome Calls"),
    ("Phase 7", "Phase 7: Virtual Soft Pilot & Prep"),
    ("Phase 8", "Phase 8: Training & Full Validation"),
    ("Phase 9", "Phase 9: Go-Live"),
    ("Phase 10", "Phase 10: Post-Launch Support & Optimization"),
)

# Stage names used before the numbered phase system was introduced
LEGACY_STAGE_ALIASES: Dict[str, str] = {
    "contract & initial setup": "Phase 1",
    "billing, clia & hiring": "Phase 2",
    "tech infrastructure & lis integration": "Phase 3",
    "tech infrastructure": "Phase 3",
    "inventory forecasting & procurement": "Phase 4",
    "inventory forecasting": "Phase 4",
    "supply orders & logistics": "Phase 5",
    "supply orders": "Phase 5",
    "onboarding & welcome calls": "Phase 6",
    "onboarding": "Phase 6",
    "virtual soft pilot & prep": "Phase 7",
    "virtual soft pilot": "Phase 7",
    "soft pilot": "Phase 7",
    "training & full validation": "Phase 8",
    "training & validation": "Phase 8",
    "training/validation": "Phase 8",
    "go-live": "Phase 9",
    "go live": "Phase 9",
    "golive": "Phase 9",
    "post-launch support & optimization": "Phase 10",
    "post-launch": "Phase 10",
    "post launch": "Phase 10",
}


class PhaseDefinition(Mapping[str, str]):
    """Immutable, ordered phase key -> display name table."""

    def __init__(self, phases, aliases: Optional[Mapping[str, str]] = None):
        items = list(phases.items()) if isinstance(phases, Mapping) else list(phases)
        if not items:
            raise ValueError("Phase table must define at least one phase")

        names: Dict[str, str] = {}
        for key, name in items:
            if not key:
                raise ValueError("Phase keys must be non-empty")
            if key in names:
                raise ValueError(f"Duplicate phase key: {key}")
            names[key] = name or key

        self._names = MappingProxyType(names)
        self._order: Tuple[str, ...] = tuple(names)

        resolved: Dict[str, str] = {}
        for alias, key in (aliases or {}).items():
            if key not in names:
                raise ValueError(f"Alias {alias!r} points to unknown phase {key!r}")
            resolved[alias.strip().lower()] = key
        self._aliases = MappingProxyType(resolved)

    @classmethod
    def standard(cls) -> "PhaseDefinition":
        """The 10-phase implementation table with legacy stage aliases."""
        return cls(STANDARD_PHASES, LEGACY_STAGE_ALIASES)

    def __getitem__(self, key: str) -> str:
        return self._names[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __repr__(self) -> str:
        return f"PhaseDefinition({list(self._order)!r})"

    @property
    def keys_in_order(self) -> Tuple[str, ...]:
        return self._order

    @property
    def aliases(self) -> Mapping[str, str]:
        return self._aliases

    def name_for(self, key: str) -> str:
        """Display name for a phase key, falling back to the key itself."""
        return self._names.get(key, key)

    def resolve(self, phase: Optional[str]) -> Optional[str]:
        """Map a task's phase value to a phase key.

        Exact keys win; otherwise legacy stage names are matched
        case-insensitively. Unknown values resolve to None.
        """
        if phase is None or phase == "":
            return None
        phase = str(phase)
        if phase in self._names:
            return phase
        return self._aliases.get(phase.strip().lower())

    def to_list(self) -> List[Dict[str, str]]:
        return [{"key": key, "name": self._names[key]} for key in self._order]
