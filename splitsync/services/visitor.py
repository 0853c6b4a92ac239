# services/visitor.py

import uuid
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

import structlog

from splitsync.core.exceptions import RemoteUnavailableError, VaryDefinitionError
from splitsync.models.schemas.assignment import Assignment
from splitsync.models.schemas.split_registry import SplitRegistry
from splitsync.repositories.remote_repo import RemoteRepository, default_remote
from splitsync.services.job_service import JobService
from splitsync.services.variant_calculator import VariantCalculator
from splitsync.services.vary_dsl import Defaulted, VaryDSL

logger = structlog.get_logger(__name__)

DEFAULT_TRUE_VARIANT = "true"
DEFAULT_FALSE_VARIANT = "false"


def merge_assignments(
    local: Mapping[str, Assignment], remote: Iterable[Assignment]
) -> Dict[str, Assignment]:
    """
    Merges server-confirmed assignments into a local assignment registry.

    Local assignments for splits the server knows nothing about are kept as
    they are. A server assignment always replaces the local one for its split,
    whatever the local flags were; it is never a new assignment.
    """
    merged = dict(local)
    for assignment in remote:
        merged[assignment.split_name] = Assignment(
            split_name=assignment.split_name,
            variant=assignment.variant,
            unsynced=assignment.unsynced,
            new_assignment=False,
        )
    return merged


def _to_assignment(value) -> Assignment:
    if isinstance(value, Assignment):
        return value
    return Assignment.model_validate(value)


class Visitor:
    """
    A visitor and its split assignments.

    Not safe for concurrent use; scope one instance to one request or session.
    """

    def __init__(
        self,
        id: Optional[str] = None,
        assignments: Optional[Iterable[Any]] = None,
        remote: Optional[RemoteRepository] = None,
        jobs: Optional[JobService] = None,
    ):
        self._id = str(id) if id is not None else str(uuid.uuid4())
        self._remote = remote or default_remote()
        self._jobs = jobs
        self._split_registry: Optional[SplitRegistry] = None

        # None means "not loaded yet"; a generated visitor cannot exist remotely
        self._assignment_registry: Optional[Dict[str, Assignment]] = None
        if assignments is not None:
            self._assignment_registry = {
                a.split_name: a for a in (_to_assignment(a) for a in assignments)
            }
        elif id is None:
            self._assignment_registry = {}

    @property
    def id(self) -> str:
        return self._id

    @property
    def jobs(self) -> JobService:
        if self._jobs is None:
            self._jobs = JobService.default()
        return self._jobs

    @property
    def split_registry(self) -> SplitRegistry:
        if self._split_registry is None:
            try:
                self._split_registry = self._remote.fetch_split_registry()
            except RemoteUnavailableError as e:
                logger.warning("split_registry_unavailable", visitor_id=self.id, error=str(e))
                self._split_registry = SplitRegistry.unavailable()
        return self._split_registry

    @property
    def assignment_registry(self) -> Dict[str, Assignment]:
        if self._assignment_registry is None:
            self._assignment_registry = {
                a.split_name: a for a in self._fetch_remote_assignments()
            }
        return self._assignment_registry

    def _fetch_remote_assignments(self) -> List[Assignment]:
        try:
            remote_visitor = self._remote.fetch_visitor(self.id)
        except RemoteUnavailableError as e:
            logger.warning("remote_visitor_fetch_unavailable", visitor_id=self.id, error=str(e))
            return []
        return [a.to_assignment() for a in remote_visitor.assignments]

    @property
    def unsynced_assignments(self) -> List[Assignment]:
        return [a for a in self.assignment_registry.values() if a.unsynced]

    @property
    def assignment_json(self) -> Dict[str, str]:
        return {split_name: a.variant for split_name, a in self.assignment_registry.items()}

    def _assignment_for(self, split_name: str) -> Optional[Assignment]:
        """
        Returns the visitor's assignment for the split, calculating and
        recording a new unsynced one if there is none yet. Returns None when
        the split registry could not be loaded.
        """
        registry = self.assignment_registry
        if split_name in registry:
            return registry[split_name]

        split_registry = self.split_registry
        if not split_registry.available:
            return None

        variant = VariantCalculator(
            self.id, split_name, split_registry.weighting_for(split_name)
        ).variant()
        assignment = Assignment(
            split_name=split_name, variant=variant, unsynced=True, new_assignment=True
        )
        registry[split_name] = assignment
        return assignment

    def _warn_unknown_variants(self, dsl: VaryDSL) -> None:
        split_registry = self.split_registry
        if not split_registry.available:
            return
        for variant in dsl.declared_variants:
            if not split_registry.has_variant(dsl.split_name, variant):
                logger.warning("vary_unknown_variant", split_name=dsl.split_name, variant=variant)

    def vary(self, split_name, block: Optional[Callable[[VaryDSL], Any]] = None):
        """
        Runs the branch declared for this visitor's variant of the split.

        ``block`` receives a :class:`VaryDSL` and registers ``when`` branches
        and exactly one ``default``. If the resolved variant has no ``when``
        branch, the default runs and the assignment is switched to the
        default variant (marked unsynced).
        """
        split_name = str(split_name)
        if block is None:
            raise VaryDefinitionError(f"must provide block to `vary` for {split_name}")

        dsl = VaryDSL(split_name)
        block(dsl)
        dsl.validate()
        self._warn_unknown_variants(dsl)

        assignment = self._assignment_for(split_name)
        outcome = dsl.dispatch(assignment.variant if assignment else None)

        if isinstance(outcome, Defaulted) and assignment is not None and outcome.variant != assignment.variant:
            if not self.split_registry.available:
                logger.warning(
                    "vary_default_split_registry_unavailable",
                    split_name=split_name,
                    variant=outcome.variant,
                    assigned_variant=assignment.variant,
                )
            elif self.split_registry.has_variant(split_name, outcome.variant):
                self.assignment_registry[split_name] = assignment.model_copy(
                    update={"variant": outcome.variant, "unsynced": True}
                )
            else:
                logger.warning(
                    "vary_default_not_registered",
                    split_name=split_name,
                    variant=outcome.variant,
                    assigned_variant=assignment.variant,
                )

        return dsl.run(outcome)

    def _false_variant_for(self, split_name: str, true_variant: str) -> str:
        weighting = self.split_registry.weighting_for(split_name) or {}
        if true_variant in weighting and len(weighting) == 2:
            return next(variant for variant in weighting if variant != true_variant)
        return DEFAULT_FALSE_VARIANT

    def ab(self, split_name, true_variant=None) -> bool:
        """True when the visitor is assigned ``true_variant`` ("true" by default)."""
        split_name = str(split_name)
        true_variant = DEFAULT_TRUE_VARIANT if true_variant is None else str(true_variant)
        false_variant = self._false_variant_for(split_name, true_variant)

        def branches(v: VaryDSL):
            v.when(true_variant, lambda: True)
            v.default(false_variant, lambda: False)

        return self.vary(split_name, branches)

    def link_identifier(self, identifier_type: str, value) -> "Visitor":
        """
        Associates an external identity with this visitor.

        On success the visitor adopts the canonical id returned by the remote
        authority and its confirmed assignments, which win over local ones.
        If the remote authority is unavailable the same request is queued for
        a retry and the visitor is left as it was.
        """
        value = str(value)
        try:
            remote_visitor = self._remote.create_identifier(identifier_type, self.id, value)
        except RemoteUnavailableError as e:
            logger.warning(
                "identifier_link_deferred",
                visitor_id=self.id,
                identifier_type=identifier_type,
                error=str(e),
            )
            self.jobs.enqueue_create_identifier(identifier_type, self.id, value)
            return self

        local = self.assignment_registry
        self._id = remote_visitor.id
        self._assignment_registry = merge_assignments(
            local, [a.to_assignment() for a in remote_visitor.assignments]
        )
        return self

    def notify_unsynced_assignments(self) -> int:
        """Queues a remote write for every unsynced assignment."""
        unsynced = self.unsynced_assignments
        for assignment in unsynced:
            self.jobs.enqueue_create_assignment(self.id, assignment.split_name, assignment.variant)
        return len(unsynced)

    @classmethod
    def backfill_identity(
        cls,
        identifier_type: str,
        identifier_value,
        existing_analytics_id: str,
        remote: Optional[RemoteRepository] = None,
        jobs: Optional[JobService] = None,
    ) -> "Visitor":
        """
        Builds the canonical visitor for an already-known identity and queues
        an alias job tying ``existing_analytics_id`` to the canonical id.
        """
        remote = remote or default_remote()
        remote_visitor = remote.visitor_from_identifier(identifier_type, str(identifier_value))
        assignments = [
            Assignment(split_name=a.split_name, variant=a.variant, unsynced=False, new_assignment=False)
            for a in remote_visitor.assignments
        ]
        visitor = cls(id=remote_visitor.id, assignments=assignments, remote=remote, jobs=jobs)
        visitor.jobs.enqueue_create_alias(existing_analytics_id, visitor.id)
        return visitor
