from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Integer, Text, DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from ..db.database import Base


class AutomationLog(Base):
    """门户会话执行步骤日志，按 valuation_id 追踪。"""

    __tablename__ = "automation_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    # 估价表由外部系统维护，这里不加外键约束
    valuation_id: Mapped[int] = mapped_column(Integer, index=True, nullable=False)
    level: Mapped[str] = mapped_column(String(16), default="info", nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    create_time: Mapped[datetime] = mapped_column(
        DateTime, default=lambda: datetime.now(timezone.utc), nullable=False
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "valuation_id": self.valuation_id,
            "level": self.level,
            "message": self.message,
            "create_time": self.create_time.isoformat() if self.create_time else None,
        }
