"""Command-line interface for recording and playing sessions."""

import argparse
import sys
import threading
from pathlib import Path
from typing import Optional

from .config_loader import ConfigLoadError, create_example_config, load_config
from .config_models import SystemConfig
from .drivers.chromium import ChromiumBrowser
from .drivers.posix_pty import PosixPty
from .interfaces import OmegaError, RecordingInterrupted
from .logging_config import get_logger, setup_logging
from .recording.controller import RecordingController, RecordingStatus
from .recording.frames import FrameDirectory
from .recording.models import PlayOptions, Recording
from .recording.player import Player
from .recording.server import AnimationServer
from .recording.shell import ShellSession
from .recording.shell_writer import ShellWriter
from .recording.signals import SignalScope
from .recording.worker_pool import FrameCapturePool

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130


def create_parser() -> argparse.ArgumentParser:
    """Create the command-line argument parser."""
    parser = argparse.ArgumentParser(
        prog="omega",
        description="Record terminal sessions and animated web pages",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Write a starting configuration
  omega init

  # Record a shell session and play it back twice as fast
  omega record -o demo.yml
  omega play demo.yml --speed-factor 0.5

  # Record an animation interactively, then in parallel for 10 seconds
  omega capture --script animation.js
  omega batch --script animation.js --duration 10000 --workers 8
        """
    )

    parser.add_argument(
        '--config',
        type=Path,
        help='Path to the configuration file (default: ./omega.yml)'
    )
    parser.add_argument(
        '--log-level',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'],
        help='Console log level (overrides config)'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    init_parser = subparsers.add_parser('init', help='Write an example configuration file')
    init_parser.add_argument(
        '--output',
        type=Path,
        default=Path('omega.yml.example'),
        help='Where to write the example (default: omega.yml.example)'
    )

    record_parser = subparsers.add_parser('record', help='Record a terminal session')
    record_parser.add_argument(
        '-o', '--output',
        type=Path,
        help='Recording file (overrides config)'
    )
    record_parser.add_argument(
        '--shell-command',
        help='Command to record (overrides config)'
    )

    play_parser = subparsers.add_parser('play', help='Play a recorded terminal session')
    play_parser.add_argument('recording', type=Path, help='Recording file')
    play_parser.add_argument(
        '--frame-delay',
        help='Fixed delay between records in ms, or "auto"'
    )
    play_parser.add_argument(
        '--max-idle-time',
        help='Maximum delay between records in ms, or "auto"'
    )
    play_parser.add_argument(
        '--speed-factor',
        type=float,
        default=1.0,
        help='Multiplier applied to every delay (default: 1.0)'
    )
    play_parser.add_argument(
        '--silent',
        action='store_true',
        help='Skip the messages shown before and after playback'
    )

    for name, help_text in (
        ('capture', 'Record an animated page, controlled by the page itself'),
        ('batch', 'Record a fixed duration of an animated page in parallel'),
    ):
        page_parser = subparsers.add_parser(name, help=help_text)
        source = page_parser.add_mutually_exclusive_group()
        source.add_argument('--url', help='Page to record instead of the built-in server')
        source.add_argument('--script', type=Path, help='Animation script served to the page')
        page_parser.add_argument('--frames-dir', type=Path, help='Frame directory (overrides config)')
        page_parser.add_argument('--show-browser', action='store_true', help='Show the browser window')
        if name == 'batch':
            page_parser.add_argument('--duration', type=float, help='Recording duration in ms (overrides config)')
            page_parser.add_argument('--workers', type=int, help='Number of browser sessions (overrides config)')
            page_parser.add_argument('--fps', type=float, help='Frames per second (overrides config)')

    return parser


def _browser(config: SystemConfig, show_browser: bool) -> ChromiumBrowser:
    return ChromiumBrowser(
        width=config.browser.width,
        height=config.browser.height,
        headless=config.browser.headless and not show_browser,
        navigation_timeout_ms=config.browser.navigation_timeout_ms
    )


def _page_server(config: SystemConfig, args: argparse.Namespace) -> Optional[AnimationServer]:
    if args.url:
        return None
    return AnimationServer(config.server, script_path=args.script)


def run_init(args: argparse.Namespace) -> int:
    create_example_config(args.output)
    print(f"Example configuration written to {args.output}")
    return EXIT_OK


def run_record(config: SystemConfig, args: argparse.Namespace) -> int:
    if args.shell_command:
        config.recording.command = args.shell_command
    output_path = args.output or config.shell.output_path

    session = ShellSession(
        PosixPty(),
        config.recording,
        writer=ShellWriter(min_delay=config.shell.min_delay),
        input_fd=sys.stdin.fileno()
    )
    recording = session.record(output_path)
    print(f"\nRecording saved to {output_path} ({len(recording.records)} records)")
    return EXIT_OK


def run_play(args: argparse.Namespace) -> int:
    recording = Recording.load(args.recording)
    options = PlayOptions.from_config(
        recording.config,
        frame_delay=args.frame_delay,
        max_idle_time=args.max_idle_time,
        speed_factor=args.speed_factor,
        silent=args.silent
    )
    result = Player(options).play_recording(recording, args.recording)
    return EXIT_INTERRUPTED if result.interrupted else EXIT_OK


def run_capture(config: SystemConfig, args: argparse.Namespace) -> int:
    frames = FrameDirectory(args.frames_dir or config.paths.frames_dir)
    controller = RecordingController(
        _browser(config, args.show_browser),
        frames,
        frame_step_ms=config.browser.frame_step_ms
    )

    server = _page_server(config, args)
    if server is not None:
        server.start()
    try:
        result = controller.run(args.url or server.url)
    finally:
        if server is not None:
            server.stop()

    if result.status == RecordingStatus.SUCCESS:
        print(f"Saved {result.frames} frames to {frames.path}")
        return EXIT_OK
    if result.status == RecordingStatus.INTERRUPTED:
        print("\nRecording cancelled")
        return EXIT_INTERRUPTED
    print(f"Error: {result.error}", file=sys.stderr)
    return EXIT_FAILURE


def run_batch(config: SystemConfig, args: argparse.Namespace) -> int:
    frames = FrameDirectory(args.frames_dir or config.paths.frames_dir)
    duration_ms = args.duration if args.duration is not None else config.browser.duration_ms
    cancel_event = threading.Event()

    server = _page_server(config, args)
    if server is not None:
        server.start()
    try:
        pool = FrameCapturePool(
            _browser(config, args.show_browser),
            args.url or server.url,
            frames,
            workers=args.workers if args.workers is not None else config.browser.workers,
            fps=args.fps if args.fps is not None else config.browser.fps
        )
        with SignalScope(lambda signum, frame: cancel_event.set()):
            report = pool.record(duration_ms, cancel_event)
    finally:
        if server is not None:
            server.stop()

    print(f"Saved {report.frames} frames to {frames.path} using {report.sessions} browser sessions")
    return EXIT_OK


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command == 'init':
        return run_init(args)

    try:
        config = load_config(args.config)
    except ConfigLoadError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE

    if args.log_level:
        config.logging.level = args.log_level
    setup_logging(config)
    logger = get_logger(__name__)

    try:
        if args.command == 'record':
            return run_record(config, args)
        if args.command == 'play':
            return run_play(args)
        if args.command == 'capture':
            return run_capture(config, args)
        return run_batch(config, args)

    except (KeyboardInterrupt, RecordingInterrupted) as e:
        logger.info(f"Interrupted: {e}")
        print("\nOperation cancelled by user")
        return EXIT_INTERRUPTED

    except ValueError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: invalid option: {e}", file=sys.stderr)
        return EXIT_FAILURE

    except (OmegaError, OSError) as e:
        logger.error(f"{args.command} failed: {e}", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILURE


if __name__ == '__main__':
    sys.exit(main())
