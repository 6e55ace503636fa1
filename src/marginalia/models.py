"""Pydantic schemas for the Marginalia API."""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic_core import PydanticCustomError

from .extraction.base import InvalidUrl
from .extraction.classifier import validate_url

HighlightColor = Literal["yellow", "green", "blue", "pink", "purple"]

DEFAULT_SYNC_STATUS = "not_synced"


def _clean_tags(tags: list[str]) -> list[str]:
    """Strip, drop empties and de-duplicate while preserving order."""
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


def _check_offset(v) -> str:
    # Offsets travel as decimal strings; ints are accepted and normalized
    if isinstance(v, bool):
        raise ValueError("offset must be a decimal string")
    if isinstance(v, int):
        v = str(v)
    if not isinstance(v, str) or not v.strip().isdigit():
        raise ValueError("offset must be a non-negative decimal string")
    return str(int(v.strip()))


class UserIn(BaseModel):
    """Registration or login request."""

    username: str = Field(min_length=1, max_length=100)
    password: str = Field(min_length=1, max_length=1000)


class TokenOut(BaseModel):
    """A freshly issued API key (shown once)."""

    user_id: int
    username: str
    api_key: str


class ArticleIn(BaseModel):
    """Incoming "save article" request."""

    url: str
    tags: list[str] = Field(default_factory=list)
    title: Optional[str] = Field(None, max_length=500)
    notes: Optional[str] = None

    @field_validator("url")
    @classmethod
    def url_format(cls, v: str) -> str:
        # Reported with the extraction error kind rather than as a schema failure
        if len(v) > 2048:
            raise PydanticCustomError(InvalidUrl.kind, "URL exceeds 2048 character limit")
        try:
            return validate_url(v)
        except InvalidUrl as e:
            raise PydanticCustomError(e.kind, "{reason}", {"reason": e.message}) from e

    @field_validator("tags")
    @classmethod
    def tags_clean(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)


class ArticleUpdate(BaseModel):
    """Editable article fields. Content, title and URL are immutable."""

    model_config = ConfigDict(extra="forbid")

    tags: Optional[list[str]] = None
    notes: Optional[str] = None
    archived: Optional[bool] = None
    read: Optional[bool] = None

    @field_validator("tags")
    @classmethod
    def tags_clean(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        return None if v is None else _clean_tags(v)


class ArticleRecord(BaseModel):
    """A complete article creation payload, ready for insertion."""

    user_id: int
    url: str
    title: str
    content: str
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    archived: bool = False
    read: bool = False
    sync_status: str = DEFAULT_SYNC_STATUS


class ArticleOut(BaseModel):
    """A persisted article."""

    id: int
    user_id: int
    url: str
    title: str
    content: str
    description: Optional[str]
    tags: list[str]
    notes: Optional[str]
    archived: bool
    read: bool
    sync_status: str
    created: datetime


class HighlightIn(BaseModel):
    """Incoming highlight. Offsets are decimal strings into the article's canonical text."""

    model_config = ConfigDict(populate_by_name=True)

    text: str = ""
    start_offset: str = Field(alias="startOffset")
    end_offset: str = Field(alias="endOffset")
    color: HighlightColor = "yellow"
    note: Optional[str] = None

    @field_validator("start_offset", "end_offset", mode="before")
    @classmethod
    def offset_format(cls, v) -> str:
        return _check_offset(v)

    @model_validator(mode="after")
    def non_empty_span(self) -> "HighlightIn":
        if int(self.start_offset) >= int(self.end_offset):
            raise ValueError("startOffset must be less than endOffset")
        return self

    @property
    def start(self) -> int:
        return int(self.start_offset)

    @property
    def end(self) -> int:
        return int(self.end_offset)


class HighlightUpdate(BaseModel):
    """Replace a highlight's color, note, or span in place."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    color: Optional[HighlightColor] = None
    note: Optional[str] = None
    text: Optional[str] = None
    start_offset: Optional[str] = Field(None, alias="startOffset")
    end_offset: Optional[str] = Field(None, alias="endOffset")

    @field_validator("start_offset", "end_offset", mode="before")
    @classmethod
    def offset_format(cls, v) -> Optional[str]:
        return None if v is None else _check_offset(v)

    @model_validator(mode="after")
    def span_complete(self) -> "HighlightUpdate":
        if (self.start_offset is None) != (self.end_offset is None):
            raise ValueError("startOffset and endOffset must be updated together")
        if self.start_offset is not None and int(self.start_offset) >= int(self.end_offset):
            raise ValueError("startOffset must be less than endOffset")
        return self


class HighlightOut(BaseModel):
    """A persisted highlight. Offsets are serialized as decimal strings."""

    model_config = ConfigDict(populate_by_name=True)

    id: int
    article_id: int
    user_id: int
    text: str
    start_offset: str = Field(alias="startOffset")
    end_offset: str = Field(alias="endOffset")
    color: HighlightColor
    note: Optional[str]
    created: datetime

    @field_validator("start_offset", "end_offset", mode="before")
    @classmethod
    def offset_str(cls, v) -> str:
        return _check_offset(v)


class PreferencesIn(BaseModel):
    """Display preference changes."""

    model_config = ConfigDict(extra="forbid")

    font_size: Optional[Literal["small", "medium", "large"]] = None
    line_height: Optional[Literal["compact", "normal", "relaxed"]] = None
    margins: Optional[Literal["narrow", "normal", "wide"]] = None
    theme: Optional[Literal["light", "dark", "sepia"]] = None


class PreferencesOut(BaseModel):
    user_id: int
    font_size: str
    line_height: str
    margins: str
    theme: str


class AnchorIn(BaseModel):
    """Locate quoted text in an article's canonical text."""

    text: str = Field(min_length=1)
    occurrence: int = Field(0, ge=0)
