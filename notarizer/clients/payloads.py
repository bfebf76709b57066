from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

# notarytool --output-format json payloads. Only the fields the engine reads
# are declared; everything else is kept for diagnostics.


class SubmitPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # Submission id used for every later query.
    id: str = Field(min_length=1)
    message: str = ""


class InfoPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str
    # "In Progress", "Accepted", "Invalid" or "Rejected".
    status: str
    name: str | None = None
    created_date: str | None = Field(default=None, alias="createdDate")
    # Only returned by older service variants.
    log_file_url: str | None = Field(default=None, alias="logFileURL")


class LogPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    status: str
    job_id: str | None = Field(default=None, alias="jobId")
    status_summary: str | None = Field(default=None, alias="statusSummary")
    issues: list[dict[str, object]] | None = None


class ErrorEntry(BaseModel):
    model_config = ConfigDict(extra="allow")

    code: int
    message: str = ""


class ErrorPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    # Legacy altool shape.
    product_errors: list[ErrorEntry] = Field(default_factory=list, alias="product-errors")
    errors: list[ErrorEntry] = Field(default_factory=list)
    code: int | None = None
    message: str = ""
