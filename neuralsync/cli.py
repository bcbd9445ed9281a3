"""
Command-line interface for the NeuralSync client.
"""

import asyncio
import contextlib
import logging
from collections.abc import AsyncGenerator, Coroutine
from pathlib import Path
from typing import Any

import typer

from .config import DEFAULT_EXPORT_DIR, DEFAULT_WS_URL
from .connection import ConnectionManager
from .controller import SessionController
from .models import ClientSnapshot, ExportArtifact, LinkState

app = typer.Typer(help="NeuralSync bridge client")


# MARK: - Commands


@app.command()
def monitor(
    url: str = typer.Option(DEFAULT_WS_URL, "--url", "-u", help="Bridge WebSocket URL"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Print link, mood and prediction updates in real-time."""
    _configure_logging(verbose)

    async def _monitor() -> None:
        print(f"Monitoring {url}... (Ctrl+C to stop)")

        async with ConnectionManager(url) as connection:
            controller = SessionController(connection)
            async with _running(controller):
                async with controller.stream() as snapshots:
                    previous: ClientSnapshot | None = None
                    async for snapshot in snapshots:
                        for line in describe_changes(previous, snapshot):
                            print(line)
                        previous = snapshot

    _run_with_error_handling(_monitor(), url)


@app.command()
def record(
    url: str = typer.Option(DEFAULT_WS_URL, "--url", "-u", help="Bridge WebSocket URL"),
    duration: float | None = typer.Option(
        None, "--duration", "-d", help="Seconds to record (default: until Ctrl+C)"
    ),
    output_dir: Path = typer.Option(
        DEFAULT_EXPORT_DIR, "--output-dir", "-o", help="Directory for the CSV export"
    ),
    ready_timeout: float = typer.Option(
        10.0, "--ready-timeout", help="Seconds to wait for the bridge"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """Record one session and save it as CSV."""
    _configure_logging(verbose)

    def _save(artifact: ExportArtifact) -> None:
        output_dir.mkdir(parents=True, exist_ok=True)
        path = output_dir / artifact.filename
        path.write_text(artifact.content, encoding="utf-8")
        print(f"Saved {artifact.rows} predictions to {path}")

    async def _record() -> None:
        async with ConnectionManager(url) as connection:
            controller = SessionController(connection, export_sink=_save)
            async with _running(controller):
                try:
                    await asyncio.wait_for(_wait_until_ready(controller), ready_timeout)
                except TimeoutError:
                    raise RuntimeError(f"Bridge not ready after {ready_timeout:g}s")

                try:
                    await controller.start()
                    print("Recording... (Ctrl+C to stop)")
                    if duration is None:
                        await asyncio.Event().wait()
                    else:
                        await asyncio.sleep(duration)
                finally:
                    artifact = await controller.stop()

                if artifact is None:
                    print("No predictions recorded")

    _run_with_error_handling(_record(), url)


# MARK: - Helpers


def describe_changes(
    previous: ClientSnapshot | None, current: ClientSnapshot
) -> list[str]:
    """Describe what changed between two snapshots, one line per change."""
    lines: list[str] = []

    if previous is None or previous.status != current.status:
        lines.append(f"Status: {current.status}")
    if previous is None or previous.mood != current.mood:
        lines.append(f"Mood: {current.mood.value}")

    seen = 0
    if previous is not None and previous.is_collecting:
        seen = len(previous.predictions)
    if current.is_collecting and len(current.predictions) > seen:
        for entry in reversed(current.predictions[: len(current.predictions) - seen]):
            lines.append(f"{entry.time} > {entry.emotion.value}")

    if current.last_export is not None and (
        previous is None or previous.last_export != current.last_export
    ):
        lines.append(f"Export ready: {current.last_export.filename}")

    return lines


async def _wait_until_ready(controller: SessionController) -> None:
    async with controller.stream() as snapshots:
        async for snapshot in snapshots:
            if snapshot.link_state is LinkState.READY:
                return


@contextlib.asynccontextmanager
async def _running(
    controller: SessionController,
) -> AsyncGenerator[SessionController, None]:
    """Drive the controller's event loop for the duration of the block."""
    task = asyncio.create_task(controller.run(), name="neuralsync-controller")
    try:
        yield controller
    finally:
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _run_with_error_handling(coro: Coroutine[Any, Any, Any], url: str) -> None:
    """Run an async coroutine with standardized error handling."""
    try:
        asyncio.run(coro)
    except KeyboardInterrupt:
        print("\nStopped")
        raise typer.Exit(0)
    except Exception as e:
        error_msg = str(e) if str(e) else f"Unknown error of type {type(e).__name__}"
        print(f"Error ({url}): {error_msg}")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
