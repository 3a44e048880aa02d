from typing import List, Literal, Optional, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class BlobFinalizedEvent(BaseModel):
    """
    Notification that a new object landed in the blob store.
    Accepts the Cloud Storage shape (`name`) as well as `path`.
    """

    model_config = ConfigDict(populate_by_name=True)

    bucket: str
    path: str = Field(validation_alias=AliasChoices("path", "name"))
    content_type: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("contentType", "content_type")
    )


class IngestionOutcome(BaseModel):
    status: Literal["skipped", "stored", "failed"]
    receipt_id: Optional[int] = None
    error: Optional[str] = None


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TopItem(_CamelModel):
    name: str
    quantity: Union[int, float]


class TopCategory(_CamelModel):
    name: str
    total: float


class MonthlySpending(_CamelModel):
    month: str  # YYYY-MM
    total: float


class AnalyticsResult(_CamelModel):
    """Spending summary over every stored receipt. Rebuilt on each request."""

    total_receipts: int = 0
    total_spent: float = 0
    top_items: List[TopItem] = []
    top_categories: List[TopCategory] = []
    monthly_spending: List[MonthlySpending] = []
