from pydantic import BaseModel, ConfigDict, Field


class Assignment(BaseModel):
    """One visitor's resolved variant for one split.

    Assignments are immutable; a changed assignment replaces the registry
    entry (see ``Visitor.vary``).
    """

    model_config = ConfigDict(frozen=True, from_attributes=True)

    split_name: str
    variant: str
    unsynced: bool = Field(
        False, description="Not yet confirmed as durably written by the remote authority."
    )
    new_assignment: bool = Field(
        False, description="Computed locally in this session rather than loaded from the server."
    )


class RemoteAssignmentModel(BaseModel):
    """An assignment as reported by the remote authority."""

    split_name: str
    variant: str
    unsynced: bool = False

    def to_assignment(self) -> Assignment:
        return Assignment(
            split_name=self.split_name,
            variant=self.variant,
            unsynced=self.unsynced,
            new_assignment=False,
        )


class AssignmentCreateModel(BaseModel):
    """Request body used to record an assignment on the remote authority."""

    visitor_id: str
    split_name: str
    variant: str
