from typing import Any, Dict

import sqlalchemy as sa

from receiptlens.database.models.base import Base, TimestampMixin


class Receipt(Base, TimestampMixin):
    __tablename__ = "receipts"

    id = sa.Column(sa.Integer, primary_key=True, index=True, autoincrement=True)
    store_name = sa.Column(sa.String, nullable=False, index=True)
    location = sa.Column(sa.String, nullable=True)
    # Kept as the YYYY-MM-DD string produced by extraction, not a parsed Date
    date = sa.Column(sa.String, nullable=False, index=True)

    subtotal = sa.Column(sa.Float, nullable=True)
    tax = sa.Column(sa.Float, nullable=True)
    total = sa.Column(sa.Float, nullable=False)

    # Line items are embedded and have no lifecycle of their own
    items = sa.Column(sa.JSON, nullable=False, default=list)

    # Where the image was before ingestion deleted it. Provenance only.
    image_path = sa.Column(sa.String, nullable=False, index=True)

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "store_name": self.store_name,
            "location": self.location,
            "date": self.date,
            "subtotal": self.subtotal,
            "tax": self.tax,
            "total": self.total,
            "items": list(self.items or []),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "image_path": self.image_path,
        }

    def __repr__(self):
        return f"<Receipt(id={self.id}, store_name='{self.store_name}', date='{self.date}', total={self.total})>"
