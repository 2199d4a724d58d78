from typing import Annotated

from fastapi import APIRouter, Depends, Request
from pydantic import ValidationError

from query_service.core import schemas
from query_service.core.dispatch import Completed, Failed, QueryDispatcher
from query_service.core.errors import ExecutionFailure, MalformedRequest, QueryTimeout
from query_service.core.security import require_authorization

router = APIRouter(tags=["Query"])


def get_dispatcher(request: Request) -> QueryDispatcher:
    return request.app.state.dispatcher


auth_dep = Annotated[None, Depends(require_authorization)]
dispatcher_dep = Annotated[QueryDispatcher, Depends(get_dispatcher)]


async def parse_query_request(request: Request) -> schemas.QueryRequest:
    body = await request.body()
    try:
        return schemas.QueryRequest.model_validate_json(body)
    except ValidationError as error:
        first = error.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        message = f"{location}: {first['msg']}" if location else first["msg"]
        raise MalformedRequest(message)


@router.post(
    "/query",
    response_model=schemas.QueryResponse,
    response_model_exclude_none=True,
)
async def run_query(_: auth_dep, request: Request, dispatcher: dispatcher_dep):
    """
    Run one SQL statement with pagination and a deadline.

    Returns columns/rows on success, otherwise raises the matching error which
    the app turns into {"error": {...}}.
    """
    query = await parse_query_request(request)
    outcome = await dispatcher.dispatch(query)

    if isinstance(outcome, Completed):
        return schemas.QueryResponse.from_result(outcome.result)
    if isinstance(outcome, Failed):
        raise ExecutionFailure(outcome.reason)
    raise QueryTimeout()
