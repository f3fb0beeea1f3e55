#!/usr/bin/env python3
"""
edgespeed -- internet speed test from the terminal.

Usage::

    python edgespeed.py                      # rich dashboard
    python edgespeed.py --simple             # plain text
    python edgespeed.py --json               # JSON to stdout
    python edgespeed.py --share              # print shareable text
    python edgespeed.py --workers 8 -v       # more parallelism, info logs
"""
from __future__ import annotations

import argparse
import asyncio
import json
import signal
import sys
from typing import Any, Dict, List, Optional

from speedcore.config import EngineConfig, load_engine_config
from speedcore.engine import SpeedTestEngine
from speedcore.errors import Aborted, NetworkUnavailable
from speedcore.grading import format_share_text, grade_network
from speedcore.logging_setup import configure_logging
from ui.dashboard import (
    ProgressDisplay,
    console,
    print_final_results,
    print_header,
    print_latency_details,
    print_speed_result,
)
from ui.output import create_result_json, format_text_result


# ---------------------------------------------------------------------------
# Core test runner
# ---------------------------------------------------------------------------

async def run_speedtest(
    config: EngineConfig,
    *,
    json_output: bool = False,
    simple: bool = False,
    share: bool = False,
) -> Optional[Dict[str, Any]]:
    """Drive the engine through every phase and return a JSON-serialisable dict."""

    show_ui = not json_output and not simple
    server_name = config.base_url

    if show_ui:
        print_header(server_name)

    async with SpeedTestEngine(config=config) as engine:
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, engine.abort)
        except (NotImplementedError, RuntimeError):
            pass  # no signal handlers on this platform; KeyboardInterrupt still applies

        try:
            # -- Latency ----------------------------------------------------
            latency = await _phase(engine.probe_latency, "Measuring latency", show_ui, engine)
            if show_ui:
                print_latency_details(latency)

            # -- Download ---------------------------------------------------
            download = await _phase(engine.measure_download, "Downloading", show_ui, engine)
            if show_ui:
                print_speed_result(download, "Download Results", "green")

            # -- Upload -----------------------------------------------------
            upload = await _phase(engine.measure_upload, "Uploading", show_ui, engine)
            if show_ui:
                print_speed_result(upload, "Upload Results", "blue")
        finally:
            try:
                loop.remove_signal_handler(signal.SIGINT)
            except (NotImplementedError, RuntimeError):
                pass

        summary = engine.result()

    # -- Summary ------------------------------------------------------------
    grade = grade_network(summary.download_mbps, summary.ping_ms)

    if show_ui:
        print_final_results(
            ping_ms=summary.ping_ms,
            jitter_ms=summary.jitter_ms,
            download_mbps=summary.download_mbps,
            upload_mbps=summary.upload_mbps,
            grade=grade,
        )
    elif simple:
        print(
            format_text_result(
                ping_ms=summary.ping_ms,
                jitter_ms=summary.jitter_ms,
                download_mbps=summary.download_mbps,
                upload_mbps=summary.upload_mbps,
                server_name=server_name,
                grade=grade.grade,
            )
        )

    result_json = create_result_json(
        server_info={"base_url": config.base_url, "workers": config.workers},
        latency_results=latency.to_dict(),
        download_results=download.to_dict(),
        upload_results=upload.to_dict(),
        grade=grade.to_dict(),
    )

    if json_output:
        print(json.dumps(result_json, indent=2))

    # -- Share --------------------------------------------------------------
    if share:
        share_text = format_share_text(
            ping_ms=summary.ping_ms,
            jitter_ms=summary.jitter_ms,
            download_mbps=summary.download_mbps,
            upload_mbps=summary.upload_mbps,
            server_name=server_name,
        )
        if show_ui:
            from rich.panel import Panel
            console.print(Panel(share_text, title="Share This Result", border_style="cyan"))
        else:
            print("\n" + share_text)

    return result_json


async def _phase(operation, description: str, show_ui: bool, engine: SpeedTestEngine):
    """Run one engine operation, wiring its progress into a live bar."""
    if not show_ui:
        return await operation()

    progress = ProgressDisplay()
    engine.on_progress = progress.update
    progress.start(description)
    try:
        return await operation()
    finally:
        progress.stop()
        engine.on_progress = None


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="edgespeed -- latency, jitter, download and upload speed test",
    )
    # Output modes
    parser.add_argument("--json", "-j", action="store_true", help="Output results as JSON")
    parser.add_argument("--simple", "-s", action="store_true", help="Simple output mode (no dashboard)")
    parser.add_argument("--share", action="store_true", help="Print shareable result text")
    parser.add_argument("--verbose", "-v", action="count", default=0, help="Log engine activity (-vv for debug)")

    # Test parameters (unset flags fall back to ~/.edgespeed/config.json)
    parser.add_argument("--base-url", type=str, metavar="URL", help="Sink service base URL")
    parser.add_argument("--ping-count", type=int, metavar="N", help="Number of latency trips (default: 8)")
    parser.add_argument("--download-duration", type=float, metavar="SECS", help="Download window in seconds (default: 8)")
    parser.add_argument("--upload-duration", type=float, metavar="SECS", help="Upload window in seconds (default: 10)")
    parser.add_argument("--workers", type=int, metavar="N", help="Concurrent transfers per phase (default: 4)")

    return parser


def _config_from_args(args: argparse.Namespace) -> EngineConfig:
    """Config file values overridden by whichever flags were given."""
    return load_engine_config({
        "base_url": args.base_url,
        "ping_count": args.ping_count,
        "download_window": args.download_duration,
        "upload_window": args.upload_duration,
        "workers": args.workers,
    })


def main(argv: Optional[List[str]] = None) -> None:
    args = _build_parser().parse_args(argv)

    configure_logging(("WARNING", "INFO", "DEBUG")[min(args.verbose, 2)])
    config = _config_from_args(args)

    # Validate
    try:
        config.validate()
    except ValueError as exc:
        console.print(f"[red]Error: {exc}[/red]")
        sys.exit(1)

    try:
        asyncio.run(
            run_speedtest(
                config,
                json_output=args.json,
                simple=args.simple,
                share=args.share,
            )
        )
    except (Aborted, KeyboardInterrupt):
        console.print("\n[yellow]Test cancelled by user[/yellow]")
        sys.exit(1)
    except NetworkUnavailable as exc:
        console.print(f"\n[red]Connection error: {exc}[/red]")
        sys.exit(1)
    except Exception as exc:
        console.print(f"\n[red]Error: {exc}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    main()
