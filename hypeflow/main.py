import json
import logging
from pathlib import Path
from typing import List, Optional

import typer

from hypeflow.config.settings import settings
from hypeflow.agent import CycleRunner
from hypeflow.exec.pipeline import build_pipeline
from hypeflow.ingest.aggregate import ScoredItem
from hypeflow.ingest.mock import stream_mock_items
from hypeflow.onchain.ledger import TradeLedger
from hypeflow.scheduler import Scheduler


app = typer.Typer()

# --- Logging setup ---
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(threadName)s - %(message)s",
)
logger = logging.getLogger("hypeflow")


def load_items(path: Path) -> List[ScoredItem]:
    """Read scored items written by an external sentiment scorer (JSON list)."""
    with open(path) as f:
        raw = json.load(f)
    return [ScoredItem(**r) for r in raw]


def build_runner(mode: str, items: Optional[Path] = None) -> CycleRunner:
    if mode not in ("simulate", "live"):
        raise typer.BadParameter(f"unknown mode {mode!r}, expected simulate | live")
    cfg = settings.model_copy(update={"mock_swaps": mode == "simulate"})
    pipeline = build_pipeline(cfg)
    source = (lambda: load_items(items)) if items else stream_mock_items
    return CycleRunner(pipeline, cfg, source=source)


@app.command()
def run(
    mode: str = typer.Option("simulate", help="simulate | live"),
    debug: bool = typer.Option(False, help="verbose logs"),
    interval: float = typer.Option(0.0, help="minutes between runs (0=settings)"),
    max_cycles: int = typer.Option(0, help="stop after N cycles (0=unlimited)"),
    items: Optional[Path] = typer.Option(None, help="JSON file of scored items"),
):
    if debug:
        logger.setLevel(logging.DEBUG)

    runner = build_runner(mode, items)
    minutes = interval or settings.check_interval_minutes
    logger.info(
        f"Starting HypeFlow in {mode} mode (network={settings.network}, "
        f"invested={runner.state.invested})"
    )
    scheduler = Scheduler(runner, interval_sec=minutes * 60, max_cycles=max_cycles)
    scheduler.start()
    try:
        scheduler.join()
    except KeyboardInterrupt:
        typer.echo("Stopped.")
    finally:
        scheduler.stop()


@app.command()
def cycle(
    mode: str = typer.Option("simulate", help="simulate | live"),
    debug: bool = typer.Option(False, help="verbose logs"),
    items: Optional[Path] = typer.Option(None, help="JSON file of scored items"),
):
    """Run a single decision cycle and print the result."""
    if debug:
        logger.setLevel(logging.DEBUG)
    report = build_runner(mode, items).trigger()
    if report is None or report.decision is None:
        typer.echo(f"cycle failed: {report.error if report else 'busy'}")
        raise typer.Exit(code=1)
    typer.echo(
        f"action={report.decision.action.value} confidence={report.decision.confidence:.2f} "
        f"amount={report.decision.suggested_amount:g} ok={report.ok} "
        f"invested={report.state.invested}"
    )


@app.command()
def ledger(
    offset: int = typer.Option(0, help="first record to show"),
    limit: int = typer.Option(20, help="records per table"),
):
    """Show the local ledger: investment flag and recent history."""
    book = TradeLedger.in_data_dir(settings.data_dir)
    counts = book.counts()
    typer.echo(
        f"invested={book.is_invested()} next_id={book.next_id} "
        f"trades={counts['trades']} sentiments={counts['sentiments']}"
    )
    for t in book.trades(offset, limit):
        typer.echo(
            f" trade #{t.id} {t.action.value} amount={t.amount:g} "
            f"conf={t.confidence:.2f} tx={t.tx_ref}"
        )
    for s in book.sentiments(offset, limit):
        typer.echo(
            f" sentiment #{s.id} score={s.sentiment_score} conf={s.confidence} "
            f"samples={s.sample_count}"
        )


if __name__ == "__main__":
    app()
