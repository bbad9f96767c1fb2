"""
Database Schemas for the Rovel reading backend

Each Pydantic model describes the documents of one MongoDB collection:
- Manga -> "manga"
- Novel -> "novels"
- Chapter -> "chapters"
- User -> "users"
- AdsConfig -> "adsConfig" (single document)

Manga and Novel share one id space and together form the Work union.
"""
import re
from datetime import datetime
from typing import Annotated, Any, ClassVar, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

import database

WORK_TYPES = ("manga", "novel")
_WHITESPACE = re.compile(r"\s+")


class WorkBase(BaseModel):
    # Display fields (cover, genres, author...) are free-form and kept as given
    model_config = ConfigDict(extra="allow")

    id: int = Field(..., ge=1, description="Integer id shared by manga and novels")
    title: str = Field(..., description="Work title, also the source of the chapter key")
    chapters_count: int = Field(0, ge=0, description="Number of chapters stored under the normalized title")
    created_at: Optional[Union[datetime, str]] = None

    @property
    def normalized_title(self) -> str:
        return normalize_title(self.title)


class Manga(WorkBase):
    type: Literal["manga"] = "manga"
    collection: ClassVar[str] = database.MANGA


class Novel(WorkBase):
    type: Literal["novel"] = "novel"
    collection: ClassVar[str] = database.NOVELS


Work = Annotated[Union[Manga, Novel], Field(discriminator="type")]


class Chapter(BaseModel):
    normalizedTitle: str = Field(..., description="Owning work's normalized title")
    chapterId: str = Field(..., min_length=1, description="Chapter key within the work")
    title: str = Field("", description="Chapter title")
    pages: List[Union[str, Dict[str, Any]]] = Field(default_factory=list, description="Ordered page images or page objects")
    content: Optional[str] = Field(None, description="Text body for novel chapters")


class User(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str = Field(..., description="UUID for guests")
    name: str
    role: str = "guest"
    created_at: Optional[Union[datetime, str]] = None
    last_seen: Optional[Union[datetime, str]] = None
    user_agent: str = "Unknown"


class AdsConfig(BaseModel):
    enabled: bool = True
    adUnits: Dict[str, str] = Field(default_factory=dict)
    adFrequency: Dict[str, float] = Field(default_factory=dict)


def normalize_title(title: str) -> str:
    """Lowercase and replace every whitespace run with a hyphen: "My  Manga" -> "my-manga"."""
    return _WHITESPACE.sub("-", title.lower())


# -------------------- Requests --------------------

class WorkCreate(BaseModel):
    model_config = ConfigDict(extra="allow")

    title: str = Field(..., min_length=1)
    type: str = Field(..., description="'manga' or 'novel'")


class ChapterUpsert(BaseModel):
    chapterId: Union[str, int]
    title: str = ""
    pages: Optional[List[Union[str, Dict[str, Any]]]] = None
    content: Optional[str] = None


class AdsConfigUpdate(BaseModel):
    enabled: Optional[bool] = None
    adUnits: Optional[Dict[str, str]] = None
    adFrequency: Optional[Dict[str, float]] = None


class AdCompletion(BaseModel):
    # Any JSON value is accepted; the ad gate must never turn a request away
    userId: Any = None
    manga: Any = None
    chapterId: Any = None

    @classmethod
    def from_body(cls, body: Any) -> "AdCompletion":
        return cls.model_validate(body) if isinstance(body, dict) else cls()

    def key_parts(self):
        return tuple(None if v is None else str(v) for v in (self.userId, self.manga, self.chapterId))
