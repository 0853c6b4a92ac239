"""In-memory state behind the fake remote authority."""

from typing import Dict, Optional, Tuple

from splitsync.models.schemas.assignment import RemoteAssignmentModel
from splitsync.models.schemas.split_registry import SplitRegistry
from splitsync.models.schemas.visitor import RemoteVisitorModel


class FakeStore:
    def __init__(self, split_registry: Optional[Dict[str, Dict[str, int]]] = None):
        self.split_registry = SplitRegistry(split_registry or {})
        # visitor id -> split name -> assignment
        self.visitors: Dict[str, Dict[str, RemoteAssignmentModel]] = {}
        # (identifier type, value) -> visitor id
        self.identifiers: Dict[Tuple[str, str], str] = {}

    def visitor(self, visitor_id: str) -> RemoteVisitorModel:
        """Unknown visitors are returned with no assignments."""
        assignments = self.visitors.get(visitor_id, {})
        return RemoteVisitorModel(id=visitor_id, assignments=list(assignments.values()))

    def record_assignment(self, visitor_id: str, split_name: str, variant: str, unsynced: bool = False):
        assignment = RemoteAssignmentModel(split_name=split_name, variant=variant, unsynced=unsynced)
        self.visitors.setdefault(visitor_id, {})[split_name] = assignment
        return assignment

    def link_identifier(self, identifier_type: str, visitor_id: str, value: str) -> RemoteVisitorModel:
        """
        Binds the identifier to the visitor, unless it is already bound, in
        which case the previously bound visitor is the canonical one.
        """
        canonical_id = self.identifiers.setdefault((identifier_type, value), visitor_id)
        return self.visitor(canonical_id)

    def visitor_for_identifier(self, identifier_type: str, value: str) -> RemoteVisitorModel:
        """Resolves the identifier, creating a fresh bound visitor if needed."""
        key = (identifier_type, value)
        if key not in self.identifiers:
            self.identifiers[key] = f"{identifier_type}-{value}"
        return self.visitor(self.identifiers[key])
