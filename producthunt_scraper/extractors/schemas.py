"""Data models for raw product nodes and canonical product records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

Number = Union[int, float]

PRODUCT_TYPENAME = "Product"
EDGE_TYPENAME = "ProductEdge"


def _coerce_datetime(value: Any, field_name: str) -> datetime:
    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        value = datetime.fromisoformat(text)
    if not isinstance(value, datetime):  # pragma: no cover - defensive path
        raise TypeError(f"{field_name} must be a datetime")
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    else:
        value = value.astimezone(timezone.utc)
    return value


def _dicts_only(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [entry for entry in value if isinstance(entry, dict)]


class CategoryRef(BaseModel):
    """A category or topic reference as it appears inside a product node."""

    model_config = ConfigDict(extra="ignore")

    name: Any = None
    slug: Any = None


class CategoryEdge(BaseModel):
    model_config = ConfigDict(extra="ignore")

    node: CategoryRef | None = None

    @field_validator("node", mode="before")
    @classmethod
    def _node_must_be_object(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None


class CategoryConnection(BaseModel):
    """GraphQL connection holding either ``edges[].node`` or ``nodes[]``."""

    model_config = ConfigDict(extra="ignore")

    edges: list[CategoryEdge] = Field(default_factory=list)
    nodes: list[CategoryRef] = Field(default_factory=list)

    @field_validator("edges", "nodes", mode="before")
    @classmethod
    def _keep_objects(cls, value: Any) -> list[dict[str, Any]]:
        return _dicts_only(value)


class LaunchRef(BaseModel):
    """The latest launch post attached to a product."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: Any = None
    scheduled_at: Any = Field(default=None, alias="scheduledAt")
    votes_count: Any = Field(default=None, alias="votesCount")


class ProductNode(BaseModel):
    """Decoded ``Product`` object.

    Fields are intentionally loose: the same logical value may come from
    several keys depending on which query rendered the page, and scalar values
    may be numbers or numeric strings. The normalizer picks among them.
    """

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    typename: str | None = Field(default=None, alias="__typename")
    id: Any = None
    slug: Any = None
    name: Any = None
    tagline: Any = None
    description: Any = None
    url: Any = None
    logo_uuid: Any = Field(default=None, alias="logoUuid")
    thumbnail_uuid: Any = Field(default=None, alias="thumbnailUuid")

    votes_count: Any = Field(default=None, alias="votesCount")
    upvotes: Any = None
    reviews_rating: Any = Field(default=None, alias="reviewsRating")
    rating: Any = None
    reviews_count: Any = Field(default=None, alias="reviewsCount")
    detailed_reviews_count: Any = Field(default=None, alias="detailedReviewsCount")
    founder_reviews_count: Any = Field(default=None, alias="founderReviewsCount")
    founder_shoutouts_count: Any = Field(default=None, alias="founderShoutoutsCount")
    founder_shoutouts: Any = Field(default=None, alias="founderShoutouts")
    followers_count: Any = Field(default=None, alias="followersCount")
    followers: Any = None
    posts_count: Any = Field(default=None, alias="postsCount")

    latest_launch: LaunchRef | None = Field(default=None, alias="latestLaunch")
    launch_post_id: Any = Field(default=None, alias="launchPostId")
    launch_scheduled_at: Any = Field(default=None, alias="launchScheduledAt")

    is_top_product: Any = Field(default=None, alias="isTopProduct")
    is_subscribed: Any = Field(default=None, alias="isSubscribed")
    is_no_longer_online: Any = Field(default=None, alias="isNoLongerOnline")

    categories: list[CategoryRef] = Field(default_factory=list)
    topics: CategoryConnection | None = None
    product_categories: CategoryConnection | None = Field(default=None, alias="productCategories")
    tags: list[Any] = Field(default_factory=list)

    @field_validator("categories", mode="before")
    @classmethod
    def _flat_categories(cls, value: Any) -> list[dict[str, Any]]:
        return _dicts_only(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _flat_tags(cls, value: Any) -> list[Any]:
        return value if isinstance(value, list) else []

    @field_validator("topics", "product_categories", "latest_launch", mode="before")
    @classmethod
    def _objects_or_none(cls, value: Any) -> Any:
        return value if isinstance(value, dict) else None

    def lookup(self, source: str) -> Any:
        """Resolve a dotted attribute path such as ``latest_launch.votes_count``."""

        value: Any = self
        for part in source.split("."):
            if value is None:
                return None
            value = getattr(value, part, None)
        return value


class ProductRecord(BaseModel):
    """Canonical, schema-stable product record."""

    model_config = ConfigDict(extra="ignore")

    id: str
    slug: str
    name: str
    description: str | None = None
    tagline: str | None = None
    url: str | None = None
    image_url: str | None = None
    logo_uuid: str | None = None

    upvotes: Number | None = None
    rating: Number | None = None
    reviews_count: Number | None = None
    detailed_reviews_count: Number | None = None
    founder_reviews_count: Number | None = None
    founder_shoutouts: Number | None = None
    followers_count: Number | None = None
    posts_count: Number | None = None

    launch_post_id: str | None = None
    launch_scheduled_at: str | None = None

    is_top_product: bool = False
    is_subscribed: bool = False
    is_no_longer_online: bool = False

    categories: list[str] = Field(default_factory=list)
    category_slugs: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)

    scraped_at: datetime

    @field_validator("scraped_at", mode="before")
    @classmethod
    def _ensure_utc(cls, value: Any) -> datetime:
        return _coerce_datetime(value, "scraped_at")

    def to_output(self) -> dict[str, Any]:
        return self.model_dump(mode="json")


SET_FIELDS: tuple[str, ...] = ("categories", "category_slugs", "tags")
SCALAR_FIELDS: tuple[str, ...] = tuple(
    name
    for name in ProductRecord.model_fields
    if name not in SET_FIELDS and name != "scraped_at"
)
