from typing import Dict, Optional

from fastapi import status


class QueryServiceError(Exception):
    """Base class for failures that end a /query request."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.headers = headers


class MalformedRequest(QueryServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class Unauthorized(QueryServiceError):
    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "unauthorized"):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class ExecutionFailure(QueryServiceError):
    status_code = status.HTTP_400_BAD_REQUEST


class QueryTimeout(QueryServiceError):
    status_code = status.HTTP_408_REQUEST_TIMEOUT

    def __init__(self, message: str = "timeout"):
        super().__init__(message)
