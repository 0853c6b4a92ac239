from typing import List

from pydantic import BaseModel, Field, field_validator

from splitsync.models.schemas.assignment import RemoteAssignmentModel


class RemoteVisitorModel(BaseModel):
    """Canonical visitor state held by the remote authority."""

    id: str
    assignments: List[RemoteAssignmentModel] = Field(default_factory=list)


class IdentifierCreateModel(BaseModel):
    """Links an external identity (e.g. a user id) to a visitor."""

    identifier_type: str
    visitor_id: str
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def stringify_value(cls, value):
        # Numeric ids are accepted and sent as strings
        return str(value)


class IdentifierResponseModel(BaseModel):
    visitor: RemoteVisitorModel
