"""Main application entry point for minutetaker."""

import sys
import argparse
import logging
import mimetypes
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console

from . import __version__
from .config import MinutetakerConfig
from .errors import MinutetakerError, PermissionDenied
from .models.generation import MeetingMode, SupplementaryFile
from .services.meeting_service import MeetingService
from .ui.minutes_screen import MinutesScreen
from .ui.recording_screen import RecordingScreen

logger = logging.getLogger(__name__)


def setup_logging(config: MinutetakerConfig, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/minutetaker.log')
    console_output = config.get('logging.console_output', True)

    Path(log_file_path).parent.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path, encoding='utf-8')
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    ))
    handlers.append(file_handler)

    # Console handler - warnings only, the screens own the terminal
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_handler.setFormatter(logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s'))
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info(f"minutetaker {__version__} starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


def load_files(paths: List[str]) -> List[SupplementaryFile]:
    """Read supplementary documents given on the command line."""
    files = []
    for path in paths:
        file_path = Path(path)
        mime_type = mimetypes.guess_type(file_path.name)[0] or "application/octet-stream"
        files.append(SupplementaryFile(name=file_path.name, mime_type=mime_type, data=file_path.read_bytes()))
        logger.info(f"Loaded supplementary file {file_path.name} ({mime_type})")
    return files


def load_inputs(args):
    """Read the transcript and supplementary files named on the command line."""
    transcript = Path(args.transcript).read_text(encoding="utf-8") if args.transcript else ""
    return transcript, load_files(args.file)


def ask_participants() -> List[str]:
    answer = click.prompt("Participants (comma separated, blank to skip)", default="", show_default=False)
    return [name.strip() for name in answer.replace("、", ",").split(",") if name.strip()]


def run_record(service: MeetingService, args, console: Console) -> int:
    mode = MeetingMode(args.mode)
    try:
        transcript, files = load_inputs(args)
    except OSError as e:
        console.print(f"❌ Cannot read input: {e}", style="bold red")
        return 2

    try:
        service.start_recording(args.duration, mode)
    except PermissionDenied as e:
        console.print(f"❌ {e.detail}. Check the microphone and try again.", style="bold red")
        return 1

    artifact = RecordingScreen(service, console).run()
    if artifact is None:
        return 0
    console.print(f"Recorded {artifact.duration_seconds:.0f}s ({artifact.size_bytes} bytes)", style="green")

    request = service.build_request(artifact, transcript, files, ask_participants())
    MinutesScreen(service, console).run(request)
    return 0


def run_generate(service: MeetingService, args, console: Console) -> int:
    try:
        transcript, files = load_inputs(args)
        request = service.build_request(None, transcript, files, ask_participants(),
                                        mode=MeetingMode(args.mode))
    except OSError as e:
        console.print(f"❌ Cannot read input: {e}", style="bold red")
        return 2
    except ValueError as e:
        console.print(f"❌ {e}", style="bold red")
        return 2
    service.mode = request.mode
    MinutesScreen(service, console).run(request)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="minutetaker - record meetings and generate minutes",
        epilog="Recording keys: p=pause, r=resume, x=reconnect microphone, s=stop, c=cancel"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: looks for minutetaker.yaml)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: INFO)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"minutetaker v{__version__}"
    )

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--mode",
        choices=[mode.value for mode in MeetingMode],
        default=MeetingMode.INTERNAL.value,
        help="Meeting mode (default: internal)"
    )
    common.add_argument(
        "--file",
        action="append",
        default=[],
        help="Supplementary document or audio file (repeatable)"
    )
    common.add_argument(
        "--transcript",
        type=str,
        help="Text file with an agenda or transcript to include"
    )

    commands = parser.add_subparsers(dest="command", required=True)
    record = commands.add_parser("record", parents=[common], help="Record a meeting, then generate minutes")
    record.add_argument(
        "--duration",
        type=int,
        help="Scheduled meeting length in minutes; enables the countdown"
    )
    commands.add_parser("generate", parents=[common], help="Generate minutes from files or a transcript")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for minutetaker."""
    args = build_parser().parse_args(argv)
    console = Console()

    try:
        config = MinutetakerConfig(args.config)
    except (FileNotFoundError, ValueError) as e:
        console.print(f"❌ {e}", style="bold red")
        sys.exit(2)
    setup_logging(config, args.log_level)

    service = None
    code = 1
    try:
        service = MeetingService(config)
        if args.command == "record":
            code = run_record(service, args, console)
        else:
            code = run_generate(service, args, console)
    except KeyboardInterrupt:
        code = 130
        console.print("\n👋 Goodbye!")
    except MinutetakerError as e:
        logger.error(f"Application error: {e.code}: {e.detail}")
        console.print(f"❌ {e.detail}", style="bold red")
        code = 1
    finally:
        if service is not None:
            saved = service.shutdown()
            if saved:
                console.print(f"Recording kept at {saved}", style="yellow")
    sys.exit(code)


if __name__ == "__main__":
    main()
