"""Normalized content model handed from extraction to rendering."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field


class ImageRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    src: str
    alt: str = ""


class Article(BaseModel):
    """Long-form article. ``body_html`` is the stripped inner markup."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["article"] = "article"
    title: str
    author: str
    body_html: str
    images: tuple[ImageRef, ...] = ()
    captured_at: datetime


class Post(BaseModel):
    """A single post; also the item type of a thread."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["post"] = "post"
    author: str
    text: str = ""
    images: tuple[ImageRef, ...] = ()
    posted_at: datetime


class Thread(BaseModel):
    """Consecutive posts by one author, in rendered order."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["thread"] = "thread"
    author: str
    posts: tuple[Post, ...] = Field(min_length=1)
    captured_at: datetime

    @computed_field  # type: ignore[prop-decorator]
    @property
    def post_count(self) -> int:
        return len(self.posts)


NormalizedContent = Annotated[
    Union[Article, Post, Thread],
    Field(discriminator="kind"),
]
