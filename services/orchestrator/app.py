from __future__ import annotations

from contracts import DeploymentFinishedTrigger, to_primitive
from services.orchestrator.config import Settings
from services.orchestrator.engine import JMeterServiceEngine
from services.orchestrator.telemetry import get_logger

try:
    from fastapi import FastAPI, HTTPException
except ImportError as exc:  # pragma: no cover - runtime dependency guard
    raise RuntimeError("FastAPI is required to run the jmeter-service receiver.") from exc


logger = get_logger(__name__)

settings = Settings.from_env()
app = FastAPI(title="jmeter-service", version="0.1.0")
engine = JMeterServiceEngine(settings)


@app.get("/health")
def health() -> dict:
    return {"status": "ok", "tools": to_primitive(engine.tool_status)}


def receive_event(payload: dict) -> dict:
    keptn_context = str(payload.get("shkeptncontext", ""))
    try:
        trigger = DeploymentFinishedTrigger.from_cloudevent(payload)
    except ValueError as exc:
        logger.error("Rejected event: %s", exc, keptn_context=keptn_context)
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    record = engine.submit(trigger)
    return {"run_id": record.run_id, "status": record.status.value}


app.add_api_route(settings.receive_path, receive_event, methods=["POST"], status_code=202)


@app.get("/api/v1/runs")
def list_runs() -> dict:
    return {"runs": engine.snapshot_all()}


@app.get("/api/v1/runs/{run_id}")
def get_run(run_id: str) -> dict:
    snapshot = engine.snapshot(run_id)
    if snapshot is None:
        raise HTTPException(status_code=404, detail="Run not found.")
    return snapshot
