from contextlib import asynccontextmanager
from datetime import datetime, timezone
import os

from fastapi import FastAPI
from fastapi.responses import JSONResponse, PlainTextResponse

from .db.database import init_db, get_session
from .models.automation_log import AutomationLog
from .core.pipeline import fetch_pending_valuations, runner


@asynccontextmanager
async def lifespan(app: FastAPI):
    # 初始化数据库等资源
    init_db()
    yield


app = FastAPI(title="Claim Autopilot - DAT form-filling agent", lifespan=lifespan)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@app.post("/webhook/trigger")
def trigger_automation():
    """
    外部（n8n 等）触发一轮录入。立即返回，不等待运行结束。
    已有运行进行中时拒绝，避免两个会话处理同一条记录。
    """
    print("📬 收到触发请求")
    if not runner.start():
        return JSONResponse(
            status_code=409,
            content={"message": "Automation already running", "timestamp": _now_iso()},
        )
    return JSONResponse(
        status_code=202,
        content={"message": "Automation started", "timestamp": _now_iso()},
    )


@app.get("/health", response_class=PlainTextResponse)
def health() -> str:
    return "Automation server is running."


@app.get("/api/runs/status")
def run_status():
    """查询当前是否有运行进行中，以及上一轮的结果。"""
    return {"ok": True, **runner.status()}


@app.get("/api/valuations")
def list_pending_valuations():
    """列出 feedback 为空的待处理记录（新的优先）。"""
    return [v.to_dict() for v in fetch_pending_valuations()]


@app.get("/api/valuations/{valuation_id}/logs")
def get_valuation_logs(valuation_id: int):
    """返回指定记录的自动化日志。"""
    with get_session() as session:
        logs = (
            session.query(AutomationLog)
            .filter(AutomationLog.valuation_id == valuation_id)
            .order_by(AutomationLog.create_time.asc(), AutomationLog.id.asc())
            .all()
        )
        return [log.to_dict() for log in logs]


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "claimautopilot.app:app",
        host="0.0.0.0",
        port=int(os.getenv("PORT", "3000")),
    )
