"""A fake remote authority for local development and tests.

It serves the same routes ``RemoteRepository`` talks to, from an in-memory
``FakeStore``. It makes no assignment decisions of its own.
"""

from fastapi import APIRouter, Depends, FastAPI, Path, Request
import uvicorn
from starlette import status

from splitsync.core.auth import require_auth_token
from splitsync.core.logging import configure_logging
from splitsync.fake.store import FakeStore
from splitsync.models.schemas.assignment import AssignmentCreateModel, RemoteAssignmentModel
from splitsync.models.schemas.visitor import (
    IdentifierCreateModel,
    IdentifierResponseModel,
    RemoteVisitorModel,
)

router = APIRouter(prefix="/api/v1", dependencies=[Depends(require_auth_token)])


def get_store(request: Request) -> FakeStore:
    return request.app.state.store


@router.get("/split_registry", status_code=status.HTTP_200_OK, summary="Get the split registry")
def get_split_registry(store: FakeStore = Depends(get_store)):
    return store.split_registry.to_hash()


@router.get(
    "/visitors/{visitor_id}",
    response_model=RemoteVisitorModel,
    status_code=status.HTTP_200_OK,
    summary="Get a visitor and its assignments",
)
def get_visitor(
    visitor_id: str = Path(..., description="The ID of the visitor."),
    store: FakeStore = Depends(get_store),
):
    return store.visitor(visitor_id)


@router.post(
    "/identifier",
    response_model=IdentifierResponseModel,
    status_code=status.HTTP_200_OK,
    summary="Link an identifier to a visitor",
)
def post_identifier(identifier_data: IdentifierCreateModel, store: FakeStore = Depends(get_store)):
    visitor = store.link_identifier(
        identifier_data.identifier_type, identifier_data.visitor_id, identifier_data.value
    )
    return IdentifierResponseModel(visitor=visitor)


@router.get(
    "/identifier_types/{identifier_type}/identifiers/{identifier_value}/visitor",
    response_model=RemoteVisitorModel,
    status_code=status.HTTP_200_OK,
    summary="Get the visitor bound to an identifier",
)
def get_identifier_visitor(
    identifier_type: str,
    identifier_value: str,
    store: FakeStore = Depends(get_store),
):
    return store.visitor_for_identifier(identifier_type, identifier_value)


@router.post(
    "/assignment",
    response_model=RemoteAssignmentModel,
    status_code=status.HTTP_201_CREATED,
    summary="Record an assignment",
)
def post_assignment(assignment_data: AssignmentCreateModel, store: FakeStore = Depends(get_store)):
    return store.record_assignment(
        assignment_data.visitor_id, assignment_data.split_name, assignment_data.variant
    )


def create_app(store: FakeStore | None = None) -> FastAPI:
    configure_logging()
    app = FastAPI(
        title="splitsync fake remote",
        description="In-memory stand-in for the split-testing authority",
        version="0.1.0",
    )
    app.state.store = store or FakeStore()
    app.include_router(router)
    return app


# Local development instance with a couple of sample splits
app = create_app(
    FakeStore(
        {
            "blue_button": {"false": 50, "true": 50},
            "time": {"hammertime": 100, "clobberin_time": 0},
        }
    )
)


if __name__ == "__main__":
    uvicorn.run("splitsync.fake.server:app", host="0.0.0.0", port=3000, reload=True)
