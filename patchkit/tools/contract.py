from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError


class ToolName(StrEnum):
    APPLY_V4A_PATCH = "apply_v4a_patch"
    SEARCH_REPLACE = "search_replace"


class ToolStatus(StrEnum):
    SUCCESS = "success"
    ERROR = "error"


class ApplyV4APatchParams(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
    )

    path: str = ""
    patch: str
    dry_run: bool = False


class SearchReplaceParams(BaseModel):
    model_config = ConfigDict(
        extra="forbid",
    )

    path: str = Field(min_length=1)
    diff: str
    preview: bool = False


class ApplyV4APatchRequest(BaseModel):
    tool: Literal["apply_v4a_patch"] = "apply_v4a_patch"
    request_id: str
    params: ApplyV4APatchParams


class SearchReplaceRequest(BaseModel):
    tool: Literal["search_replace"] = "search_replace"
    request_id: str
    params: SearchReplaceParams


ToolRequest = Annotated[
    ApplyV4APatchRequest | SearchReplaceRequest,
    Field(discriminator="tool"),
]

_tool_request_adapter: TypeAdapter[ToolRequest] = TypeAdapter(ToolRequest)


class ToolRequestError(Exception):
    def __init__(self, error: ValidationError):
        super().__init__(f"Invalid tool request: {error}")
        self.errors = error.errors(include_url=False)


def parse_tool_request(payload: dict[str, Any]) -> ToolRequest:
    """
    Validate a raw tool call payload into a typed request.

    Raises:
        ToolRequestError: unknown tool, missing or extra params
    """

    try:
        return _tool_request_adapter.validate_python(payload)
    except ValidationError as e:
        raise ToolRequestError(e) from e


class ToolError(BaseModel):
    error_type: str
    message: str
    details: dict[str, Any] = Field(default_factory=dict)


class EditOutput(BaseModel):
    """The {success, message, error} shape returned to the calling agent."""

    success: bool
    message: str = ""
    error: str = ""


class ToolResult(BaseModel):
    request_id: str
    tool: ToolName
    status: ToolStatus
    started_at: datetime
    ended_at: datetime
    duration_sec: float
    message: str = ""
    data: dict[str, Any] | None = None
    error: ToolError | None = None

    @property
    def success(self) -> bool:
        return self.status == ToolStatus.SUCCESS

    def to_output(self) -> EditOutput:
        if self.error is not None:
            return EditOutput(
                success=False,
                message=self.message,
                error=f"{self.error.error_type}: {self.error.message}",
            )
        return EditOutput(success=self.success, message=self.message)
