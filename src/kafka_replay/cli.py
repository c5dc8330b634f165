"""
CLI entry point for kafka-replay.

This module provides the Typer-based command-line interface for kafka-replay.
All user interactions flow through these commands.

Commands:
    record      Record messages from a Kafka topic into a file
    replay      Replay a recorded file into a Kafka topic
    cat         Display the messages in a recorded file
    config      Show the resolved configuration and where it comes from

Architecture Note:
    The CLI is intentionally thin - it parses arguments, builds the Kafka
    source/sink and delegates to the record and replay sessions. Status
    output goes to stderr; message data (cat) and --json results go to stdout.
"""

import json
import logging
import signal
import sys
import threading
import traceback
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Annotated, Any, NoReturn, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from kafka_replay import __version__
from kafka_replay.cat import cat as cat_records
from kafka_replay.cat import format_json, format_raw
from kafka_replay.config import (
    describe_resolution,
    load_config,
    resolve_brokers,
    resolve_config_path,
)
from kafka_replay.errors import KafkaReplayError, SessionCancelledError
from kafka_replay.record import record_to_file
from kafka_replay.replay import replay_file
from kafka_replay.schema import (
    RecordOptions,
    RecordResult,
    ReplayOptions,
    ReplayResult,
    SessionStatus,
)
from kafka_replay.streams.base import DiscardSink, Sink
from kafka_replay.streams.kafka import KafkaSink, KafkaSource, ensure_topic
from kafka_replay.transcoder import open_decoder

# Initialize Typer app with metadata
app = typer.Typer(
    name="kafka-replay",
    help="Record Kafka messages to a file and replay them later.",
    add_completion=False,
    no_args_is_help=True,
)

# Rich consoles: data on stdout, status on stderr
console = Console()
err_console = Console(stderr=True)


@dataclass
class GlobalOptions:
    """Options shared by every command."""

    config_path: Path | None = None
    profile: str | None = None
    brokers: list[str] = field(default_factory=list)
    verbose: bool = False
    quiet: bool = False

    def resolve_brokers(self) -> list[str]:
        return resolve_brokers(self.brokers, self.profile, load_config(self.config_path))


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]kafka-replay[/bold] version {__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )
    # kafka-python is chatty at INFO
    logging.getLogger("kafka").setLevel(logging.DEBUG if verbose else logging.WARNING)


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    config_path: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            help="Path to the config file. Defaults to ./kafka-replay.yaml or ~/.config/kafka-replay/config.yaml.",
        ),
    ] = None,
    profile: Annotated[
        Optional[str],
        typer.Option(
            "--profile",
            help="Config profile to use (overrides default_profile).",
        ),
    ] = None,
    brokers: Annotated[
        Optional[list[str]],
        typer.Option(
            "--brokers",
            "-b",
            help="Kafka broker address(es). Repeat or comma separate. Overrides profile and KAFKA_BROKERS.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only log warnings and errors.",
        ),
    ] = False,
) -> None:
    """
    kafka-replay - Record and replay Kafka messages.

    Captures topics into a compact binary file and replays them with
    optional rate limiting, looping, partition pinning and filtering.
    """
    _configure_logging(verbose, quiet)
    ctx.obj = GlobalOptions(
        config_path=config_path,
        profile=profile,
        brokers=brokers or [],
        verbose=verbose,
        quiet=quiet,
    )


@contextmanager
def _cancel_on_interrupt(cancel: threading.Event) -> Iterator[None]:
    """Turn SIGINT into the session cancellation signal."""
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, lambda signum, frame: cancel.set())
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def _fail(message: str, options: GlobalOptions, exc: BaseException | None = None) -> NoReturn:
    err_console.print(f"[red]{escape(message)}[/red]")
    if exc is not None and options.verbose:
        err_console.print(f"[dim]{escape(traceback.format_exc())}[/dim]")
    raise typer.Exit(code=1)


def _find_bytes(find: str | None) -> bytes | None:
    return find.encode("utf-8") if find else None


@app.command()
def record(
    ctx: typer.Context,
    topic: Annotated[
        str,
        typer.Option("--topic", "-t", help="Kafka topic to record messages from."),
    ],
    partition: Annotated[
        int,
        typer.Option("--partition", "-p", help="Partition to record from (direct mode).", min=0),
    ] = 0,
    group: Annotated[
        Optional[str],
        typer.Option("--group", "-g", help="Consumer group id. Cannot be combined with --offset."),
    ] = None,
    offset: Annotated[
        Optional[int],
        typer.Option("--offset", "-O", help="Start from this offset (0 = beginning). Cannot be combined with --group.", min=0),
    ] = None,
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Maximum number of messages to record (0 = unlimited).", min=0),
    ] = 0,
    find: Annotated[
        Optional[str],
        typer.Option("--find", "-f", help="Only record messages containing this text."),
    ] = None,
    timeout: Annotated[
        float,
        typer.Option("--timeout", "-T", help="Stop recording after this many seconds (0 = no timeout).", min=0),
    ] = 0.0,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Output file for recorded messages."),
    ] = Path("messages.log"),
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the result in JSON format."),
    ] = False,
) -> None:
    """
    Record messages from a Kafka topic into a file.

    Example:
        $ kafka-replay --brokers localhost:9092 record -t orders -l 1000 -o orders.bin
    """
    options: GlobalOptions = ctx.obj
    if group and offset is not None:
        raise typer.BadParameter(
            "--group and --offset cannot be used together: consumer groups manage offsets automatically",
            param_hint="--offset",
        )

    try:
        brokers = options.resolve_brokers()
        record_options = RecordOptions(offset=offset, limit=limit, find=_find_bytes(find))
    except (KafkaReplayError, ValueError) as e:
        _fail(str(e), options, e)

    if not options.quiet:
        err_console.print(f"Recording messages from topic '{escape(topic)}' on brokers {', '.join(brokers)}")
        if group:
            err_console.print(f"Consumer group: {escape(group)}")
        else:
            err_console.print(f"Using direct partition access (partition {partition})")
        err_console.print(f"Output file: {output}")

    cancel = threading.Event()
    timer = threading.Timer(timeout, cancel.set) if timeout > 0 else None
    try:
        source = KafkaSource(brokers, topic, partition=partition, group_id=group)
        if timer is not None:
            timer.daemon = True
            timer.start()
        with _cancel_on_interrupt(cancel):
            result = record_to_file(source, output, record_options, cancel)
    except (KafkaReplayError, OSError) as e:
        _fail(f"Record error: {e}", options, e)
    finally:
        if timer is not None:
            timer.cancel()

    if json_output:
        _output_json_result(_record_result_dict(result, output))
    else:
        _display_record_result(result, options)
    raise typer.Exit(code=0 if result.success else 1)


def _record_result_dict(result: RecordResult, output: Path) -> dict[str, Any]:
    return {
        "status": result.status.value,
        "success": result.success,
        "output": str(output),
        "records_written": result.records_written,
        "bytes_written": result.bytes_written,
        "duration_seconds": round(result.duration_seconds, 3),
        "error": _error_dict(result.error),
    }


def _display_record_result(result: RecordResult, options: GlobalOptions) -> None:
    if result.status == SessionStatus.FAILED:
        err_console.print(f"[red]✗ Recording failed: {escape(str(result.error))}[/red]")
    elif not options.quiet:
        note = " (cancelled)" if result.status == SessionStatus.CANCELLED else ""
        err_console.print(
            f"[green]✓[/green] Recorded {result.records_written} messages ({result.bytes_written} bytes){note}"
        )


@app.command()
def replay(
    ctx: typer.Context,
    topic: Annotated[
        str,
        typer.Option("--topic", "-t", help="Kafka topic to replay messages to."),
    ],
    input_path: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="Recorded messages file.",
            exists=True,
            readable=True,
            dir_okay=False,
        ),
    ],
    rate: Annotated[
        int,
        typer.Option("--rate", help="Messages per second (0 = maximum speed).", min=0),
    ] = 0,
    loop: Annotated[
        bool,
        typer.Option("--loop", help="Replay continuously until interrupted."),
    ] = False,
    partition: Annotated[
        Optional[int],
        typer.Option("--partition", "-p", help="Target partition (default: automatic assignment).", min=0),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Decode, filter and pace messages without sending them."),
    ] = False,
    find: Annotated[
        Optional[str],
        typer.Option("--find", "-f", help="Only replay messages containing this text."),
    ] = None,
    no_ack: Annotated[
        bool,
        typer.Option("--no-ack", help="Don't wait for broker acknowledgment (faster, less reliable)."),
    ] = False,
    preserve_timestamps: Annotated[
        bool,
        typer.Option("--preserve-timestamps", help="Send the original message timestamps."),
    ] = False,
    create_topic: Annotated[
        bool,
        typer.Option("--create-topic", help="Create the topic if it doesn't exist."),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the result in JSON format."),
    ] = False,
) -> None:
    """
    Replay a recorded file into a Kafka topic.

    Example:
        $ kafka-replay --brokers localhost:9092 replay -t orders-copy -i orders.bin --rate 100
    """
    options: GlobalOptions = ctx.obj
    try:
        replay_options = ReplayOptions(
            rate=rate,
            loop=loop,
            partition=partition,
            dry_run=dry_run,
            find=_find_bytes(find),
        )
        brokers = [] if dry_run else options.resolve_brokers()
    except (KafkaReplayError, ValueError) as e:
        _fail(str(e), options, e)

    if not options.quiet:
        if dry_run:
            err_console.print("[yellow]DRY RUN MODE: No messages will be sent to Kafka[/yellow]")
        else:
            err_console.print(f"Replaying messages to topic '{escape(topic)}' on brokers {', '.join(brokers)}")
        err_console.print(f"Input file: {input_path}")
        err_console.print(f"Rate limit: {f'{rate} messages/second' if rate > 0 else 'maximum speed'}")
        if loop:
            err_console.print("Looping: infinite (Ctrl+C to stop)")

    cancel = threading.Event()
    try:
        sink: Sink
        if dry_run:
            sink = DiscardSink()
        else:
            if create_topic:
                ensure_topic(brokers, topic)
            sink = KafkaSink(brokers, topic, no_ack=no_ack)
        with _cancel_on_interrupt(cancel):
            result = replay_file(input_path, sink, replay_options, cancel, preserve_timestamps)
    except (KafkaReplayError, OSError) as e:
        _fail(f"Replay error: {e}", options, e)

    if json_output:
        _output_json_result(_replay_result_dict(result, topic))
    else:
        _display_replay_result(result, topic, options)
    raise typer.Exit(code=0 if result.success else 1)


def _replay_result_dict(result: ReplayResult, topic: str) -> dict[str, Any]:
    return {
        "status": result.status.value,
        "success": result.success,
        "topic": topic,
        "dry_run": result.dry_run,
        "records_replayed": result.records_replayed,
        "batches_dispatched": result.batches_dispatched,
        "cycles": result.cycles,
        "duration_seconds": round(result.duration_seconds, 3),
        "error": _error_dict(result.error),
    }


def _display_replay_result(result: ReplayResult, topic: str, options: GlobalOptions) -> None:
    if result.status == SessionStatus.FAILED:
        err_console.print(
            f"[red]✗ Replay failed after {result.records_replayed} messages: {escape(str(result.error))}[/red]"
        )
        return
    if options.quiet:
        return
    note = " (cancelled)" if result.status == SessionStatus.CANCELLED else ""
    if result.dry_run:
        err_console.print(
            f"[green]✓[/green] Dry run completed: validated {result.records_replayed} messages "
            f"(no messages were sent){note}"
        )
    else:
        err_console.print(
            f"[green]✓[/green] Replayed {result.records_replayed} messages to topic '{escape(topic)}'{note}"
        )


def _error_dict(error: Exception | None) -> dict[str, Any] | str | None:
    if error is None:
        return None
    if isinstance(error, KafkaReplayError):
        return error.to_dict()
    return str(error)


def _output_json_result(output: dict[str, Any]) -> None:
    """Print a result as JSON on stdout."""
    print(json.dumps(output, indent=2, default=str))


@app.command()
def cat(
    ctx: typer.Context,
    input_path: Annotated[
        Path,
        typer.Option(
            "--input",
            "-i",
            help="Recorded messages file.",
            exists=True,
            readable=True,
            dir_okay=False,
        ),
    ],
    raw: Annotated[
        bool,
        typer.Option("--raw", "-r", help="Output only the message data, one message per line."),
    ] = False,
    count: Annotated[
        bool,
        typer.Option("--count", "-c", help="Only print the number of matching messages."),
    ] = False,
    find: Annotated[
        Optional[str],
        typer.Option("--find", "-f", help="Only show messages containing this text."),
    ] = None,
) -> None:
    """
    Display the messages in a recorded file.

    Each message is printed as a JSON line with timestamp, key and data.

    Example:
        $ kafka-replay cat -i orders.bin --find ERROR
    """
    options: GlobalOptions = ctx.obj
    cancel = threading.Event()
    try:
        with open_decoder(input_path) as decoder, _cancel_on_interrupt(cancel):
            sys.stdout.flush()
            result = cat_records(
                decoder,
                output=None if count else sys.stdout.buffer,
                formatter=format_raw if raw else format_json,
                find=_find_bytes(find),
                count_only=count,
                cancel=cancel,
            )
            sys.stdout.buffer.flush()
    except (KafkaReplayError, OSError) as e:
        _fail(f"Cat error: {e}", options, e)

    if count:
        print(result.count)
    if result.error is not None and not isinstance(result.error, SessionCancelledError):
        _fail(f"Cat error after {result.count} messages: {result.error}", options)


@app.command("config")
def show_config(ctx: typer.Context) -> None:
    """
    Show the resolved configuration and where each value comes from.

    Example:
        $ kafka-replay --profile staging config
    """
    options: GlobalOptions = ctx.obj
    path = resolve_config_path(options.config_path)
    try:
        config = load_config(options.config_path)
        resolution = describe_resolution(options.brokers, options.profile, config)
    except KafkaReplayError as e:
        _fail(str(e), options, e)

    table = Table(show_header=True, header_style="bold")
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_column("Source", style="dim")

    table.add_row("config file", str(path), "file exists" if path.exists() else "file not found; using empty config")
    table.add_row("profile", resolution.profile or "(none)", resolution.profile_source or "")
    if resolution.brokers:
        source = resolution.source or ""
        if resolution.overridden:
            source += f"; overrides: {', '.join(resolution.overridden)}"
        table.add_row("brokers", ", ".join(resolution.brokers), source)
    else:
        table.add_row("brokers", "(none)", "set --brokers, a profile with brokers, or KAFKA_BROKERS")
    if config.profiles:
        table.add_row("profiles", ", ".join(sorted(config.profiles)), "")

    console.print(table)


if __name__ == "__main__":
    app()
