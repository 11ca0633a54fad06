"""
记录处理流水线。

职责：
- 从 anonymized_valuations 表取出 feedback 为空的记录（新的优先）
- 逐条、串行地为每条记录开一个门户会话
- 无论成败都把结果状态回写到 feedback

PipelineRunner 负责把外部触发转交给后台线程，并拒绝重叠运行。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from threading import Lock, Thread
from typing import Callable, Optional

from ..config import PortalConfig
from ..db.database import get_session
from ..models.valuation import Valuation, ValuationStatus
from .portal_session import PortalSession, SessionResult

SessionFactory = Callable[[PortalConfig], PortalSession]


@dataclass
class PipelineReport:
    started_at: datetime
    finished_at: Optional[datetime] = None
    statuses: dict[int, str] = field(default_factory=dict)
    # 状态回写失败的记录 id -> 错误信息
    write_back_errors: dict[int, str] = field(default_factory=dict)

    @property
    def processed(self) -> int:
        return len(self.statuses)

    def to_dict(self) -> dict:
        return {
            "started_at": self.started_at.isoformat(),
            "finished_at": self.finished_at.isoformat() if self.finished_at else None,
            "processed": self.processed,
            "statuses": {str(k): v for k, v in self.statuses.items()},
            "write_back_errors": {
                str(k): v for k, v in self.write_back_errors.items()
            },
        }


def fetch_pending_valuations() -> list[Valuation]:
    with get_session() as session:
        return (
            session.query(Valuation)
            .filter(Valuation.feedback.is_(None))
            .order_by(Valuation.created_at.desc())
            .all()
        )


def write_back_status(valuation_id: int, status: ValuationStatus) -> None:
    # 使用 get_session() 确保自动 commit
    with get_session() as session:
        db_row = session.get(Valuation, valuation_id)
        if not db_row:
            print(f"[valuation={valuation_id}] ⚠ 回写状态时记录已不存在")
            return
        db_row.feedback = status.value
        session.add(db_row)
    print(f"[valuation={valuation_id}] 状态已回写: {status.value}")


def run_pipeline(
    config: Optional[PortalConfig] = None,
    *,
    session_factory: SessionFactory = PortalSession,
) -> PipelineReport:
    """
    处理一遍当前所有待处理记录。记录之间严格串行，互不重叠。
    """
    config = config or PortalConfig.from_env()
    report = PipelineReport(started_at=datetime.now(timezone.utc))

    valuations = fetch_pending_valuations()
    if not valuations:
        print("📭 没有待处理的估价记录")
        report.finished_at = datetime.now(timezone.utc)
        return report

    print(f"🚀 开始处理 {len(valuations)} 条估价记录")
    for valuation in valuations:
        try:
            result: SessionResult = session_factory(config).run(valuation)
            status = result.status
        except Exception as e:
            # 会话本身应已兜底；这里保证状态一定回写
            print(f"[valuation={valuation.id}] ❌ 会话异常: {e}")
            status = ValuationStatus.FAILED
        report.statuses[valuation.id] = status.value
        try:
            write_back_status(valuation.id, status)
        except Exception as e:
            # 单条回写失败不影响后续记录
            print(f"[valuation={valuation.id}] ❌ 状态回写失败: {e}")
            report.write_back_errors[valuation.id] = str(e)[:300]

    report.finished_at = datetime.now(timezone.utc)
    print(f"🏁 本轮处理完成: {report.processed} 条")
    return report


class PipelineRunner:
    """
    后台单线程运行流水线。运行中再次触发会被拒绝，避免两个会话处理同一条记录。
    """

    def __init__(
        self,
        config_factory: Callable[[], PortalConfig] = PortalConfig.from_env,
        pipeline_fn: Callable[[PortalConfig], PipelineReport] = run_pipeline,
    ) -> None:
        self._config_factory = config_factory
        self._pipeline_fn = pipeline_fn
        self._lock = Lock()
        self._running = False
        self._thread: Optional[Thread] = None
        self.last_report: Optional[PipelineReport] = None
        self.last_error: Optional[str] = None

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._running

    def start(self) -> bool:
        """启动一轮运行；已有运行进行中时返回 False。"""
        with self._lock:
            if self._running:
                return False
            self._running = True
        self._thread = Thread(target=self._run, daemon=True)
        self._thread.start()
        return True

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread:
            self._thread.join(timeout)

    def _run(self) -> None:
        try:
            self.last_report = self._pipeline_fn(self._config_factory())
            self.last_error = None
        except Exception as e:
            self.last_error = str(e)
            print(f"❌ 自动化运行异常: {e}")
        finally:
            with self._lock:
                self._running = False

    def status(self) -> dict:
        return {
            "running": self.is_running,
            "last_report": self.last_report.to_dict() if self.last_report else None,
            "last_error": self.last_error,
        }


# 全局单例（单进程部署）
runner = PipelineRunner()
