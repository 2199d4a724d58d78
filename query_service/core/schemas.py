from typing import List, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    ValidationInfo,
    field_validator,
)


# One day, longer deadlines are rejected as malformed
MAX_TIMEOUT_MS = 24 * 60 * 60 * 1000

# Closed set of row value types
Scalar = Union[StrictBool, StrictInt, StrictFloat, StrictStr, None]


# =========================
# REQUEST
# =========================
class QueryRequest(BaseModel):
    sql: str = ""
    limit: int = Field(default=0, ge=0)
    offset: int = Field(default=0, ge=0)
    timeout_ms: int = Field(default=0, le=MAX_TIMEOUT_MS)

    model_config = ConfigDict(strict=True, frozen=True, extra="ignore")

    # JSON null means the field was left out
    @field_validator("sql", "limit", "offset", "timeout_ms", mode="before")
    @classmethod
    def null_as_default(cls, value, info: ValidationInfo):
        if value is None:
            return cls.model_fields[info.field_name].default
        return value

    @property
    def timeout(self) -> Optional[float]:
        """Requested timeout in seconds, None when the default applies."""
        if self.timeout_ms > 0:
            return self.timeout_ms / 1000
        return None


# =========================
# RESULT / RESPONSE
# =========================
class QueryResult(BaseModel):
    columns: List[str] = []
    rows: List[List[Scalar]] = []


class ApiError(BaseModel):
    code: int
    message: str


class QueryResponse(BaseModel):
    """
    Wire shape of every /query response.
    Either columns/rows or error is set, never both.
    """

    columns: Optional[List[str]] = None
    rows: Optional[List[List[Scalar]]] = None
    error: Optional[ApiError] = None

    @classmethod
    def from_result(cls, result: QueryResult) -> "QueryResponse":
        return cls(columns=result.columns, rows=result.rows)

    @classmethod
    def from_error(cls, code: int, message: str) -> "QueryResponse":
        return cls(error=ApiError(code=code, message=message))
