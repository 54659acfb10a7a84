from __future__ import annotations

import math
import re
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from bugbridge.domain.enums import FilterBucket


def _normalize_header(key: Any) -> str:
    return re.sub(r"[\s\-]+", "_", str(key).strip().lower())


def _blank_to_none(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, float) and math.isnan(value):
        return None
    text = str(value)
    return text if text.strip() else None


def _text_or_none(value: Any) -> str | None:
    """Keep strings, render plain numbers, blank out anything else."""
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return None if isinstance(value, float) and math.isnan(value) else str(value)
    return None


def _scalar_id(value: Any) -> int | str | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, str)):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return _text_or_none(value)


class ImportedRow(BaseModel):
    """One spreadsheet row keyed by normalised column name.

    Known columns are typed; anything else is kept as an extra field.
    """

    model_config = ConfigDict(extra="allow", frozen=True)

    id: str | None = None
    description: str | None = None
    priority: str | None = None
    status: str | None = None
    tags: str | None = None
    os: str | None = None
    browser: str | None = None
    browser_version: str | None = None
    resolution: str | None = None
    browser_size: str | None = None
    site: str | None = None
    siteurl: str | None = None
    url: str | None = None
    severity: str | None = None
    requester_email: str | None = None

    @model_validator(mode="before")
    @classmethod
    def _normalize_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        out: dict[str, Any] = {}
        for key, value in data.items():
            if key is None:
                continue
            name = _normalize_header(key)
            if not name:
                continue
            out[name] = _blank_to_none(value)
        return out

    @property
    def site_url(self) -> str | None:
        return self.site or self.siteurl or self.url or (self.model_extra or {}).get("site_url")

    def is_blank(self) -> bool:
        return all(v is None for v in self.model_dump().values())


class Attachment(BaseModel):
    model_config = ConfigDict(extra="allow")

    content_type: str | None = None
    url: str | None = None

    @field_validator("content_type", "url", mode="before")
    @classmethod
    def _string_only(cls, v: Any) -> str | None:
        # A number is not a usable link or media type
        return v if isinstance(v, str) else None


class RemoteIssue(BaseModel):
    """A tracker task as returned by the list or detail endpoint.

    Only fields the pipeline branches on are typed. Everything else the API
    sends is kept in ``model_extra`` so extraction can still inspect it.
    """

    model_config = ConfigDict(extra="allow")

    id: int | str | None = None
    status: Any = None
    status_id: int | str | None = None
    priority_id: int | str | None = None
    priority: Any = None
    description: str | None = None
    tag_names: list[str] | None = None
    tags: Any = None
    attachments: list[Attachment] = Field(default_factory=list)
    requester_email: str | None = None

    @field_validator("attachments", mode="before")
    @classmethod
    def _drop_malformed_attachments(cls, v: Any) -> list[Any]:
        if not isinstance(v, list):
            return []
        return [a for a in v if isinstance(a, dict)]

    @field_validator("id", "status_id", "priority_id", mode="before")
    @classmethod
    def _coerce_ids(cls, v: Any) -> int | str | None:
        return _scalar_id(v)

    @field_validator("requester_email", mode="before")
    @classmethod
    def _coerce_requester_email(cls, v: Any) -> str | None:
        return _text_or_none(v)

    @field_validator("description", mode="before")
    @classmethod
    def _coerce_description(cls, v: Any) -> str | None:
        if v is None:
            return None
        return v if isinstance(v, str) else str(v)

    @field_validator("tag_names", mode="before")
    @classmethod
    def _coerce_tag_names(cls, v: Any) -> list[str] | None:
        if v is None:
            return None
        if isinstance(v, str):
            return [t.strip() for t in v.split(",") if t.strip()]
        if isinstance(v, list):
            return [str(t) for t in v if t is not None]
        return None

    def get(self, key: str, default: Any = None) -> Any:
        """Read a typed or extra field by its API name."""
        if key in type(self).model_fields:
            value = getattr(self, key)
        else:
            value = (self.model_extra or {}).get(key)
        return default if value is None else value

    @property
    def status_text(self) -> str:
        status = self.status
        if isinstance(status, dict):
            status = status.get("name")
        return "" if status is None else str(status).strip()

    def merged_with(self, detail: dict[str, Any]) -> "RemoteIssue":
        """Shallow-merge a detail payload over this list-stage object."""
        base = self.model_dump(exclude_unset=True)
        return RemoteIssue.model_validate({**base, **detail})


class NormalizedIssueRecord(BaseModel):
    """Report-ready projection of one issue."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    bug_id: int = Field(alias="id")
    bug_status: str = Field(default="New", alias="bugStatus")
    bug_type: str = Field(default="", alias="bugType")
    severity: str = ""
    status: str = ""
    priority_id: int | str | None = Field(default=None, alias="priorityId")
    description: str = ""
    tags: str = ""
    site_url: str = Field(default="", alias="siteUrl")
    os: str = ""
    browser: str = ""
    browser_size: str = Field(default="", alias="browserSize")
    resolution: str = ""
    screenshot: str = ""
    reporter: str = ""


class FilterSelection(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    feedback: bool = False
    task_board: bool = Field(default=False, alias="taskBoard")
    archive: bool = False

    @property
    def enabled(self) -> list[FilterBucket]:
        buckets = []
        if self.feedback:
            buckets.append(FilterBucket.feedback)
        if self.task_board:
            buckets.append(FilterBucket.task_board)
        if self.archive:
            buckets.append(FilterBucket.archive)
        return buckets

    @property
    def any_enabled(self) -> bool:
        return bool(self.enabled)


class RowSuccess(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int | str
    status: Literal["success"] = "success"
    bugherd_id: int | str | None = Field(default=None, alias="bugherdId")
    url: str | None = None


class RowFailure(BaseModel):
    id: int | str
    status: Literal["error"] = "error"
    error: str


RowResult = Union[RowSuccess, RowFailure]


class ChartData(BaseModel):
    labels: list[str]
    values: list[int]
    colors: list[str]
