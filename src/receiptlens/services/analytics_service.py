import datetime
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

from receiptlens.schemas.receipt_schemas import (
    AnalyticsResult,
    MonthlySpending,
    TopCategory,
    TopItem,
)
from receiptlens.services.receipt_store import ReceiptStore
from receiptlens.services.receipt_validation import to_amount

logger = logging.getLogger(__name__)

TOP_ITEMS_LIMIT = 10
TOP_CATEGORIES_LIMIT = 5
MONTHS_LIMIT = 12

Number = Union[int, float]


def _money(value: float) -> float:
    return round(value, 2)


def _quantity(value: Number) -> Number:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _item_name(item: Dict[str, Any]) -> str:
    for key in ("general_name", "description"):
        value = item.get(key)
        if value is not None and str(value).strip():
            return str(value).strip()
    return "Unknown"


def _item_tags(item: Dict[str, Any]) -> List[str]:
    raw = item.get("tags")
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, (list, tuple, set)):
        raw = []
    tags: List[str] = []
    for tag in raw:
        if tag is None:
            continue
        label = str(tag).strip().lower()
        if label and label not in tags:
            tags.append(label)
    return tags or ["other"]


def _month_key(date_value: Any) -> Optional[str]:
    if not date_value:
        return None
    try:
        parsed = datetime.date.fromisoformat(str(date_value).strip()[:10])
    except ValueError:
        return None
    return f"{parsed.year:04d}-{parsed.month:02d}"


def _ranked(totals: Dict[str, Number], limit: int) -> List[Tuple[str, Number]]:
    # Ties are broken by name so repeated runs give the same order
    return sorted(totals.items(), key=lambda entry: (-entry[1], entry[0]))[:limit]


def compute_analytics_from_receipts(receipts: Iterable[Dict[str, Any]]) -> AnalyticsResult:
    """
    Reduces receipt documents into the spending summary.

    A missing total counts as 0, a missing or sub-1 qty as 1 and a missing price
    as 0. Non-numeric and non-finite values count as missing.
    Items without tags are counted under "other"; an item with several tags
    adds its full price to each of them.
    """
    receipts = list(receipts)
    if not receipts:
        return AnalyticsResult()

    total_spent = 0.0
    item_quantities: Dict[str, Number] = {}
    category_totals: Dict[str, float] = {}
    monthly_totals: Dict[str, float] = {}

    for receipt in receipts:
        receipt_total = to_amount(receipt.get("total")) or 0.0
        total_spent += receipt_total

        items = receipt.get("items")
        if isinstance(items, list):
            for item in items:
                if not isinstance(item, dict):
                    continue
                name = _item_name(item)
                qty = to_amount(item.get("qty"))
                qty = max(1.0, qty) if qty is not None else 1.0
                item_quantities[name] = item_quantities.get(name, 0) + qty

                price = to_amount(item.get("price")) or 0.0
                for tag in _item_tags(item):
                    category_totals[tag] = category_totals.get(tag, 0.0) + price

        month = _month_key(receipt.get("date"))
        if month:
            monthly_totals[month] = monthly_totals.get(month, 0.0) + receipt_total

    top_items = [
        TopItem(name=name, quantity=_quantity(quantity))
        for name, quantity in _ranked(item_quantities, TOP_ITEMS_LIMIT)
    ]
    top_categories = [
        TopCategory(name=name, total=_money(total))
        for name, total in _ranked(category_totals, TOP_CATEGORIES_LIMIT)
    ]
    monthly_spending = [
        MonthlySpending(month=month, total=_money(monthly_totals[month]))
        for month in sorted(monthly_totals)[-MONTHS_LIMIT:]
    ]

    return AnalyticsResult(
        total_receipts=len(receipts),
        total_spent=_money(total_spent),
        top_items=top_items,
        top_categories=top_categories,
        monthly_spending=monthly_spending,
    )


class AnalyticsService:
    def __init__(self, receipt_store: ReceiptStore):
        self.receipt_store = receipt_store

    async def compute_analytics(self) -> AnalyticsResult:
        """Reads every receipt and summarizes it. StoreFailure propagates."""
        logger.info("Fetching receipt analytics")
        receipts = await self.receipt_store.list_all()
        analytics = compute_analytics_from_receipts(receipts)
        logger.info(
            f"Analytics calculated successfully: totalReceipts={analytics.total_receipts}, "
            f"totalSpent={analytics.total_spent}, topItems={len(analytics.top_items)}, "
            f"topCategories={len(analytics.top_categories)}, "
            f"monthlyDataPoints={len(analytics.monthly_spending)}"
        )
        return analytics
