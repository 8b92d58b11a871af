"""Stage registry for the evaluation pipeline.

Pipeline stages are plain values (``ScoringStageSpec``) registered by name.
The orchestrator resolves an explicit, ordered tuple of names against a
registry at construction time; adding or removing a stage means declaring a
new order, never branching on data.

A default registry holding the five built-in stages is provided by
``deal_qualifier.services.stages.default_stage_registry()``.  Tests or
custom deployments can build their own ``StageRegistry`` to avoid
cross-contamination.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from deal_qualifier.services.stages import ScoringStageSpec

logger = logging.getLogger(__name__)


class StageRegistry:
    """Name -> stage-spec lookup with duplicate protection.

    Usage::

        registry = StageRegistry()
        registry.register(STRATEGIC_FIT)
        specs = registry.resolve(("strategic_fit",))
    """

    def __init__(self, specs: Iterable[ScoringStageSpec] = ()) -> None:
        self._specs: dict[str, ScoringStageSpec] = {}
        for spec in specs:
            self.register(spec)

    # ------------------------------------------------------------------ #
    #  Registration                                                       #
    # ------------------------------------------------------------------ #

    def register(self, spec: ScoringStageSpec, *, overwrite: bool = False) -> None:
        """Register *spec* under ``spec.name``.

        Raises ``ValueError`` on a duplicate name unless *overwrite* is set,
        or when another stage already writes the same state key.
        """
        if not overwrite and spec.name in self._specs:
            raise ValueError(
                f"Stage '{spec.name}' is already registered. "
                "Pass overwrite=True to replace."
            )
        for other in self._specs.values():
            if other.name != spec.name and other.state_key == spec.state_key:
                raise ValueError(
                    f"Stage '{spec.name}' writes '{spec.state_key}', "
                    f"which stage '{other.name}' already owns."
                )
        self._specs[spec.name] = spec
        logger.debug("Registered stage %s -> %s", spec.name, spec.state_key)

    def unregister(self, name: str) -> ScoringStageSpec:
        """Remove and return the stage. Raises ``KeyError`` if missing."""
        try:
            return self._specs.pop(name)
        except KeyError:
            raise KeyError(f"Cannot unregister stage '{name}': not found.") from None

    def clear(self) -> None:
        self._specs.clear()

    # ------------------------------------------------------------------ #
    #  Lookup                                                              #
    # ------------------------------------------------------------------ #

    def get(self, name: str) -> ScoringStageSpec:
        """Return the stage registered as *name*.

        Raises ``KeyError`` if not found.
        """
        try:
            return self._specs[name]
        except KeyError:
            raise KeyError(
                f"Stage '{name}' not registered. Available: {self.names()}"
            ) from None

    def resolve(self, order: Iterable[str]) -> tuple[ScoringStageSpec, ...]:
        """Return the specs for *order*, preserving it.

        Raises ``ValueError`` if a name appears twice and ``KeyError`` if a
        name is unknown.
        """
        names = tuple(order)
        if len(set(names)) != len(names):
            raise ValueError(f"Stage order contains duplicates: {names}")
        return tuple(self.get(name) for name in names)

    def names(self) -> list[str]:
        """Registered stage names in registration order."""
        return list(self._specs)

    # ------------------------------------------------------------------ #
    #  Dunder helpers                                                      #
    # ------------------------------------------------------------------ #

    def __contains__(self, name: object) -> bool:
        return name in self._specs

    def __len__(self) -> int:
        return len(self._specs)

    def __iter__(self) -> Iterator[ScoringStageSpec]:
        return iter(self._specs.values())

    def __repr__(self) -> str:
        return f"<StageRegistry [{', '.join(self._specs)}]>"
