from fastapi import FastAPI, Header, HTTPException
from fastapi.responses import JSONResponse
from typing import List, Optional
from hypeflow.config import settings
from hypeflow.agent import CycleRunner
from hypeflow.exec.pipeline import build_pipeline
from hypeflow.ingest.aggregate import ScoredItem
from hypeflow.ingest.mock import stream_mock_items

app = FastAPI(title="HypeFlow Webhooks")

_runner: Optional[CycleRunner] = None


def get_runner() -> CycleRunner:
    global _runner
    if _runner is None:
        _runner = CycleRunner(build_pipeline(settings), settings, source=stream_mock_items)
    return _runner


def _auth_ok(provided: Optional[str]) -> bool:
    secret = settings.webhook_secret
    if not secret:
        return True
    return provided == secret


@app.post("/webhooks/sentiment")
def sentiment_webhook(
    items: List[ScoredItem],
    x_hypeflow_signature: Optional[str] = Header(default=None),
):
    if not _auth_ok(x_hypeflow_signature):
        raise HTTPException(status_code=401, detail="bad signature")
    report = get_runner().trigger(items)
    if report is None:
        raise HTTPException(status_code=409, detail="cycle already running")
    decision = report.decision
    return JSONResponse(
        {
            "ok": report.ok,
            "action": decision.action.value if decision else None,
            "confidence": decision.confidence if decision else None,
            "amount": decision.suggested_amount if decision else None,
            "invested": report.state.invested,
            "error": report.error or (report.outcome.error if report.outcome else ""),
        }
    )


@app.get("/ledger")
async def ledger_view(offset: int = 0, limit: int = 50):
    runner = get_runner()
    book = runner.pipeline.ledger
    body = {"invested": runner.state.invested}
    if hasattr(book, "trades"):
        body["trades"] = [t.model_dump(mode="json") for t in book.trades(offset, limit)]
        body["sentiments"] = [s.model_dump() for s in book.sentiments(offset, limit)]
    return JSONResponse(body)
