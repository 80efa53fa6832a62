"""Pydantic models for blog posts."""

from datetime import UTC, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Author(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    first_name: str = Field(alias="firstName", min_length=1)
    last_name: str = Field(alias="lastName", min_length=1)


class BlogPostCreate(BaseModel):
    """Body of ``POST /posts`` and the unit of seeding."""

    model_config = ConfigDict(populate_by_name=True)

    author: Author
    title: str = Field(min_length=1)
    content: str = Field(min_length=1)
    created: datetime | None = Field(
        default=None,
        validation_alias=AliasChoices("created", "date"),
        description="Publication time; the store assigns the current time when omitted",
    )

    @field_validator("created")
    @classmethod
    def _assume_utc(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v


class BlogPostUpdate(BaseModel):
    """Body of ``PUT /posts/{id}``. Only explicitly supplied fields are applied."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str | None = Field(default=None, description="Must match the path id when present")
    title: str | None = Field(default=None, min_length=1)
    content: str | None = Field(default=None, min_length=1)
    author: Author | None = None

    def changes(self) -> dict[str, Any]:
        """Supplied fields keyed by attribute name, ``id`` excluded."""
        return self.model_dump(exclude_unset=True, exclude_none=True, exclude={"id"})


class BlogPost(BaseModel):
    """A stored post. Serializes to exactly ``id, author, title, content, created``."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    author: Author
    title: str
    content: str
    created: datetime

    def document(self) -> dict[str, Any]:
        """Wire representation, used both as the API body and the stored JSON."""
        return self.model_dump(mode="json", by_alias=True)
