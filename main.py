"""
ICP Signal Monitor - Main Entry Point
=====================================
Command line interface for the signal pipeline.

Usage:
    python main.py run                     # One pipeline run, prints a summary
    python main.py run --events data.json  # Run over a JSON file of raw events
    python main.py serve --port 8080       # Start the API server
    python main.py schedule                # Run on the configured cron schedule
    python main.py trends --days 14        # Category trends from signal history
    python main.py companies --stage evaluation

API Documentation (serve):
    http://localhost:8000/docs        # Swagger UI
    http://localhost:8000/redoc       # ReDoc
"""

import argparse
import logging
import os
import sys
import time

from dotenv import load_dotenv

# Load environment variables before settings are read
load_dotenv()

import uvicorn

from signal_monitor.api import endpoints
from signal_monitor.config.logging_config import setup_logging
from signal_monitor.errors import SignalMonitorError
from signal_monitor.memory import CompanyMemory, SignalHistory
from signal_monitor.models.pipeline_config import load_pipeline_settings
from signal_monitor.models.schemas import BuyingStage
from signal_monitor.pipeline import create_pipeline
from signal_monitor.scheduler import PipelineScheduler

logger = logging.getLogger("signal_monitor.cli")


def cmd_run(args, settings) -> int:
    pipeline = create_pipeline(settings)
    result = pipeline.run()

    print(f"\nRun {result.run_id}")
    print(f"  Collected: {result.total_collected}")
    print(f"  Matched:   {result.total_matched}")
    print(f"  Signals:   {result.total_signals}")
    print(f"  Noise:     {result.total_noise}")
    for category, count in sorted(result.events_by_category.items(), key=lambda kv: -kv[1]):
        print(f"    {category:<25} {count}")
    if result.failed_collectors:
        print(f"  Failed collectors: {', '.join(result.failed_collectors)}")
    print(f"  Output: {result.output_file}")
    return 0


def cmd_serve(args, settings) -> int:
    print(f"""
    ╔══════════════════════════════════════════════════════════════╗
    ║                   ICP SIGNAL MONITOR                         ║
    ║                      Version 1.0.0                           ║
    ╠══════════════════════════════════════════════════════════════╣
    ║  Server starting on http://{args.host}:{args.port}                    ║
    ║  API Docs: http://localhost:{args.port}/docs                       ║
    ║  Health:   http://localhost:{args.port}/api/health                 ║
    ╚══════════════════════════════════════════════════════════════╝
    """)

    if args.reload:
        # Reload workers import the app afresh and read settings from the environment
        os.environ.update(
            OUTPUT_DIR=settings.output_dir,
            MEMORY_DIR=settings.memory_dir,
            ICP_CONFIG_PATH=settings.icp_config_path,
            LOG_LEVEL=settings.log_level,
        )
        app = "signal_monitor.api.endpoints:app"
    else:
        endpoints.configure(settings)
        app = endpoints.app

    uvicorn.run(app, host=args.host, port=args.port, reload=args.reload)
    return 0


def cmd_schedule(args, settings) -> int:
    scheduler = PipelineScheduler(
        lambda: create_pipeline(settings),
        args.cron or settings.cron_schedule,
    )
    scheduler.start(run_immediately=not args.no_initial_run)
    try:
        while True:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        scheduler.stop()
    return 0


def cmd_trends(args, settings) -> int:
    history = SignalHistory(settings.memory_dir)
    trends = history.detect_trends(args.days)
    if not trends:
        print(f"No signals in the last {args.days * 2} days")
        return 0

    arrows = {"up": "↑", "down": "↓", "stable": "→"}
    print(f"\nSignal trends ({args.days}-day window)")
    for item in trends:
        print(f"  {arrows[item.trend.value]} {item.category.value:<25} {item.count}")
    return 0


def cmd_companies(args, settings) -> int:
    memory = CompanyMemory(settings.memory_dir)
    if args.stage:
        companies = memory.get_companies_by_stage(BuyingStage(args.stage))[: args.limit]
    else:
        companies = memory.get_top_companies(args.limit)

    if not companies:
        print("No companies tracked yet")
        return 0

    for company in companies:
        stage = company.latest_buying_stage.value if company.latest_buying_stage else "-"
        print(f"  {company.company_name:<30} {company.signal_count:>4} signals  stage: {stage}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ICP Signal Monitor")
    parser.add_argument("--log-level", type=str, default=None, help="Override LOG_LEVEL")
    parser.add_argument("--output-dir", type=str, default=None, help="Override OUTPUT_DIR")
    parser.add_argument("--memory-dir", type=str, default=None, help="Override MEMORY_DIR")
    parser.add_argument("--icp", dest="icp_config_path", type=str, default=None,
                        help="Path to the ICP criteria JSON (overrides ICP_CONFIG_PATH)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Run the pipeline once")
    run_parser.add_argument("--events", dest="events_file", type=str, default=None,
                            help="JSON file of raw events to process")
    run_parser.set_defaults(handler=cmd_run)

    serve_parser = subparsers.add_parser("serve", help="Start the API server")
    serve_parser.add_argument("--host", type=str, default="0.0.0.0",
                              help="Host to bind the server to (default: 0.0.0.0)")
    serve_parser.add_argument("--port", type=int, default=8000,
                              help="Port to run the server on (default: 8000)")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload for development")
    serve_parser.set_defaults(handler=cmd_serve)

    schedule_parser = subparsers.add_parser("schedule", help="Run the pipeline on a cron schedule")
    schedule_parser.add_argument("--cron", type=str, default=None, help="Override CRON_SCHEDULE")
    schedule_parser.add_argument("--events", dest="events_file", type=str, default=None,
                                 help="JSON file of raw events to process")
    schedule_parser.add_argument("--no-initial-run", action="store_true",
                                 help="Wait for the first cron tick instead of running immediately")
    schedule_parser.set_defaults(handler=cmd_schedule)

    trends_parser = subparsers.add_parser("trends", help="Show category trends")
    trends_parser.add_argument("--days", type=int, default=7, help="Window size in days (default: 7)")
    trends_parser.set_defaults(handler=cmd_trends)

    companies_parser = subparsers.add_parser("companies", help="List tracked companies")
    companies_parser.add_argument("--limit", type=int, default=10)
    companies_parser.add_argument("--stage", choices=[s.value for s in BuyingStage], default=None)
    companies_parser.set_defaults(handler=cmd_companies)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    settings = load_pipeline_settings(
        log_level=args.log_level,
        output_dir=args.output_dir,
        memory_dir=args.memory_dir,
        icp_config_path=args.icp_config_path,
        events_file=getattr(args, "events_file", None),
    )
    setup_logging(settings.log_level, settings.log_file)

    try:
        return args.handler(args, settings)
    except SignalMonitorError as e:
        logger.error("%s: %s", e.code, e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
