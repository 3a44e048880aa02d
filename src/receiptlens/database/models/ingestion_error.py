import sqlalchemy as sa

from receiptlens.database.models.base import Base


class IngestionError(Base):
    """One failed ingestion attempt. Append-only, kept for offline diagnosis."""

    __tablename__ = "ingestion_errors"

    id = sa.Column(sa.Integer, primary_key=True, index=True, autoincrement=True)
    file_path = sa.Column(sa.String, nullable=False, index=True)
    error = sa.Column(sa.Text, nullable=False)
    timestamp = sa.Column(sa.DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<IngestionError(id={self.id}, file_path='{self.file_path}', error='{self.error[:60]}')>"
