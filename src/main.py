import argparse
import json
import logging
import signal
import sys
from typing import Any, Optional, Sequence

from app_config import AppConfigurationError, load_app_config
from app_config_schema import AppConfig
from contracts.ui_protocol import (
    ACTION_STOPPED,
    STATE_IDLE,
    STATE_WORKING,
    UI_COMMAND_STOP,
)
from pomodoro import ThreadedTickSource
from pomodoro.constants import PERIOD_DAYS
from runtime import (
    CommandResult,
    PomodoroCommands,
    RuntimeUIPublisher,
    SessionCoordinator,
    TickDependencies,
    TickProcessor,
)
from runtime.messages import stopped_message
from server import ServerConfigurationError, UIServer, UIServerConfig
from storage import SqliteSessionStore, StorageError


def setup_logging(level: int | str = logging.WARNING) -> logging.Logger:
    """Configure logging for the application."""
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )
    return logging.getLogger("pomodoro_app")


def setup_signal_handlers(coordinator: SessionCoordinator) -> None:
    """Turn SIGTERM and SIGINT into a stop request for the coordination loop."""

    def signal_handler(signum: int, frame) -> None:
        del frame
        logging.getLogger("pomodoro_app").info(
            "%s received, stopping.",
            signal.Signals(signum).name,
        )
        coordinator.request_stop()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pomodoro",
        description="Simple Pomodoro timer with session tracking",
    )
    parser.add_argument("-j", "--json", action="store_true", help="Output in JSON format")
    parser.add_argument("--config", help="Path to config.toml")
    parser.add_argument("--db", help="Path to the session database")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (-v info, -vv debug)",
    )
    subparsers = parser.add_subparsers(dest="command")

    start = subparsers.add_parser("start", help="Start a Pomodoro session")
    start.add_argument("-t", "--task", required=True, help="Task description")
    start.add_argument("-w", "--work", type=float, help="Work duration in minutes")
    start.add_argument("-b", "--break", dest="break_", type=float, help="Break duration in minutes")
    start.add_argument("-c", "--cycles", type=int, help="Number of work+break cycles")

    subparsers.add_parser("stop", help="Stop the current session")
    subparsers.add_parser("status", help="Check if a session is running")

    history = subparsers.add_parser("history", help="View session history")
    history.add_argument("-d", "--days", type=int, default=7, help="Number of days to look back")

    stats = subparsers.add_parser("stats", help="View productivity statistics")
    stats.add_argument(
        "-p",
        "--period",
        default="week",
        help=f"Analysis period ({'/'.join(PERIOD_DAYS)})",
    )
    return parser


def emit(result: CommandResult, *, json_output: bool) -> None:
    if json_output:
        print(json.dumps(result.payload, indent=2))
    elif result.message:
        print(result.message)


def start_ui_server(
    app_config: AppConfig,
    logger: logging.Logger,
    *,
    coordinator: Optional[SessionCoordinator] = None,
) -> Optional[UIServer]:
    try:
        ui_server_config = UIServerConfig.from_settings(app_config.ui_server)
    except ServerConfigurationError as error:
        logger.error("UI server configuration error: %s", error)
        logger.warning("Continuing without UI server.")
        return None

    if not ui_server_config.enabled:
        return None

    def handle_ui_command(command: str) -> None:
        if command == UI_COMMAND_STOP and coordinator is not None:
            coordinator.request_stop()

    ui_server = UIServer(
        config=ui_server_config,
        logger=logging.getLogger("ui_server"),
        command_handler=handle_ui_command,
    )
    try:
        ui_server.start(timeout_seconds=5.0)
    except RuntimeError as error:
        logger.error("UI server startup failed: %s", error)
        logger.warning("Continuing without UI server.")
        return None

    logger.info("UI server ready at %s", ui_server_config.url)
    return ui_server


def run_start(
    args: argparse.Namespace,
    app_config: AppConfig,
    commands: PomodoroCommands,
    logger: logging.Logger,
) -> int:
    timer = app_config.timer
    # Installed before the record is created so an early Ctrl-C still closes it.
    setup_signal_handlers(commands.coordinator)
    result = commands.start(
        args.task,
        work_minutes=args.work if args.work is not None else timer.work_minutes,
        break_minutes=args.break_ if args.break_ is not None else timer.break_minutes,
        cycles=args.cycles if args.cycles is not None else timer.cycles,
    )
    if not result.accepted:
        emit(result, json_output=args.json)
        return 1

    coordinator = commands.coordinator
    try:
        emit(result, json_output=args.json)
        ui_server = start_ui_server(app_config, logger, coordinator=coordinator)
        ui = RuntimeUIPublisher(ui_server)
        ui.publish_state(STATE_WORKING, message="Working")
    except BaseException:
        coordinator.stop()
        raise

    processor = TickProcessor(
        TickDependencies(
            output=sys.stdout,
            ui=ui,
            json_output=args.json,
            progress_interval_seconds=timer.progress_interval_seconds,
        )
    )

    try:
        outcome = coordinator.run(ThreadedTickSource(), observers=(processor,))
        if not outcome.completed:
            message = stopped_message(outcome.snapshot)
            ui.publish_pomodoro_update(outcome.snapshot, action=ACTION_STOPPED, message=message)
            ui.publish_state(STATE_IDLE, message="Stopped")
            if args.json:
                print(json.dumps({"event": ACTION_STOPPED}))
            else:
                print(f"\n{message}")
    finally:
        if ui_server:
            ui_server.stop()

    if outcome.errors:
        logger.error(
            "Run finished with %d storage error(s); session records may be out of date.",
            len(outcome.errors),
        )
        return 1
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run one pomodoro command."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return 0

    try:
        app_config = load_app_config(args.config)
    except AppConfigurationError as error:
        setup_logging()
        logging.getLogger("pomodoro_app").error("App configuration error: %s", error)
        return 1

    level: Any = app_config.logging.level
    if args.verbose:
        level = logging.DEBUG if args.verbose > 1 else logging.INFO
    logger = setup_logging(level)

    store = SqliteSessionStore(args.db or app_config.store.path)
    try:
        store.initialize()
    except StorageError as error:
        logger.error("Cannot open session store: %s", error)
        return 1

    try:
        commands = PomodoroCommands(store)
        if args.command == "start":
            return run_start(args, app_config, commands, logger)

        if args.command == "stop":
            result = commands.stop()
        elif args.command == "status":
            result = commands.status()
        elif args.command == "history":
            result = commands.history(args.days)
        else:
            result = commands.stats(args.period)

        emit(result, json_output=args.json)
        return 0 if result.accepted else 1
    finally:
        store.close()


if __name__ == "__main__":
    raise SystemExit(main())
