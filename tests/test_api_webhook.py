from __future__ import annotations

from datetime import datetime, timezone
from threading import Event

from fastapi.testclient import TestClient

import claimautopilot.app as app_module
from claimautopilot.app import app
from claimautopilot.config import PortalConfig
from claimautopilot.core.pipeline import PipelineReport, PipelineRunner
from claimautopilot.models.automation_log import AutomationLog
from claimautopilot.models.valuation import Valuation


def _blocking_runner(release: Event, entered: Event) -> PipelineRunner:
    def pipeline(_config):
        entered.set()
        release.wait(timeout=5)
        return PipelineReport(started_at=datetime.now(timezone.utc))

    return PipelineRunner(config_factory=PortalConfig, pipeline_fn=pipeline)


def test_trigger_returns_accepted_immediately(isolated_db, monkeypatch):
    release, entered = Event(), Event()
    runner = _blocking_runner(release, entered)
    monkeypatch.setattr(app_module, "runner", runner)

    with TestClient(app) as client:
        resp = client.post("/webhook/trigger")

    assert resp.status_code == 202
    body = resp.json()
    assert body["message"] == "Automation started"
    assert datetime.fromisoformat(body["timestamp"])
    assert entered.wait(timeout=5)
    release.set()
    runner.join(timeout=5)


def test_trigger_while_running_is_rejected(isolated_db, monkeypatch):
    release, entered = Event(), Event()
    runner = _blocking_runner(release, entered)
    monkeypatch.setattr(app_module, "runner", runner)

    with TestClient(app) as client:
        first = client.post("/webhook/trigger")
        assert entered.wait(timeout=5)
        second = client.post("/webhook/trigger")
        status = client.get("/api/runs/status")

    release.set()
    runner.join(timeout=5)

    assert first.status_code == 202
    assert second.status_code == 409
    assert second.json()["message"] == "Automation already running"
    assert status.json()["running"] is True


def test_health_check(isolated_db):
    with TestClient(app) as client:
        resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.text == "Automation server is running."


def test_pending_valuations_and_logs(isolated_db):
    with isolated_db() as session:
        session.add_all(
            [
                Valuation(id=10, registration_number="1234ABC", mileage=45000),
                Valuation(id=11, registration_number="5678DEF", feedback="Success"),
            ]
        )
        session.add_all(
            [
                AutomationLog(valuation_id=10, level="info", message="登录"),
                AutomationLog(valuation_id=10, level="error", message="registration 无法填写"),
                AutomationLog(valuation_id=11, level="info", message="other"),
            ]
        )
        session.commit()

    with TestClient(app) as client:
        pending = client.get("/api/valuations").json()
        logs = client.get("/api/valuations/10/logs").json()

    assert [v["id"] for v in pending] == [10]
    assert pending[0]["mileage"] == 45000
    assert pending[0]["photos"] == []
    assert [log["message"] for log in logs] == ["登录", "registration 无法填写"]
    assert logs[1]["level"] == "error"
