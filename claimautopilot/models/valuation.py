from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum

from sqlalchemy import JSON, Integer, String, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from ..db.database import Base


class ValuationStatus(str, Enum):
    """回写到 feedback 字段的固定状态文案。"""

    SUCCESS = "Success"
    FAILED = "Failed"
    FIELD_NOT_FILLED = "Failed: field not filled"
    NOT_PERSISTED = "Failed: fields not persisted"


class Valuation(Base):
    """待录入门户的匿名估价记录，对应 anonymized_valuations 表（外部创建）。"""

    __tablename__ = "anonymized_valuations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    order_number: Mapped[str | None] = mapped_column(String(128), nullable=True)
    first_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(128), nullable=True)
    registration_number: Mapped[str | None] = mapped_column(String(32), nullable=True)
    mileage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    photos: Mapped[list | None] = mapped_column(
        JSON,
        nullable=True,
        doc="远程照片 URL 列表，仅使用前 10 张",
    )
    # NULL 表示尚未处理；处理后写入 ValuationStatus 之一
    feedback: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )

    def photo_urls(self) -> list[str]:
        if not isinstance(self.photos, list):
            return []
        return [str(u).strip() for u in self.photos if u and str(u).strip()]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "order_number": self.order_number,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "registration_number": self.registration_number,
            "mileage": self.mileage,
            "photos": self.photo_urls(),
            "feedback": self.feedback,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
