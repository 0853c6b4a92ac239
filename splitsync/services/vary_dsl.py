"""Builder for the ``vary`` branching declaration.

Callers register ``when`` branches and exactly one ``default`` branch, then
the builder is validated and dispatched against an already-resolved variant::

    def branches(v):
        v.when("true", lambda: "blue")
        v.default("false", lambda: "red")
"""

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

from splitsync.core.exceptions import VaryDefinitionError

Behavior = Callable[[], Any]


@dataclass(frozen=True)
class Matched:
    variant: str


@dataclass(frozen=True)
class Defaulted:
    variant: str
    resolved_variant: str


Outcome = Union[Matched, Defaulted]


class VaryDSL:
    def __init__(self, split_name: str):
        self.split_name = split_name
        self._when_behaviors: Dict[str, Behavior] = {}
        self._defaults: List[tuple[str, Behavior]] = []

    def when(self, *variants, behavior: Optional[Behavior] = None):
        """
        Registers ``behavior`` for one or more variants. The behavior may be
        given as the last positional argument or as ``behavior=``.
        """
        if behavior is None and variants and callable(variants[-1]):
            *variants, behavior = variants
        if not variants:
            raise VaryDefinitionError("must provide at least one variant to `when`")
        for variant in variants:
            self._when_behaviors[str(variant)] = self._require_behavior(variant, behavior)
        return self

    def default(self, variant, behavior: Optional[Behavior] = None):
        self._defaults.append((str(variant), self._require_behavior(variant, behavior)))
        return self

    @staticmethod
    def _require_behavior(variant, behavior) -> Behavior:
        if not callable(behavior):
            raise VaryDefinitionError(f"must provide block for {variant}")
        return behavior

    @property
    def declared_variants(self) -> List[str]:
        return list(self._when_behaviors) + [variant for variant, _ in self._defaults]

    @property
    def default_variant(self) -> str:
        self.validate()
        return self._defaults[0][0]

    def validate(self) -> None:
        if len(self._defaults) > 1:
            raise VaryDefinitionError("cannot provide more than one `default`")
        if not self._defaults:
            raise VaryDefinitionError("must provide exactly one `default`")
        if not self._when_behaviors:
            raise VaryDefinitionError("must provide at least one `when`")

    def dispatch(self, resolved_variant: Optional[str]) -> Outcome:
        """Matches the resolved variant against the ``when`` branches."""
        self.validate()
        if resolved_variant is not None and resolved_variant in self._when_behaviors:
            return Matched(resolved_variant)
        return Defaulted(self.default_variant, resolved_variant)

    def run(self, outcome: Outcome) -> Any:
        if isinstance(outcome, Matched):
            return self._when_behaviors[outcome.variant]()
        return self._defaults[0][1]()
