# src/flatscribe/cli.py
import argparse
import os
import sys
import threading
from pathlib import Path

from flatscribe.config import CONFIG_FILE_NAME
from flatscribe.coordinator import RegenerationCoordinator
from flatscribe.core.ignore import ensure_output_ignored
from flatscribe.core.settings import ConfigCache, config_template
from flatscribe.errors import FlatscribeError
from flatscribe.log import setup_logging
from flatscribe.status import ConsoleStatus, PauseGate, RunState
from flatscribe.watcher import ChangeWatcher, WatchdogEventSource

COMMANDS = ("generate", "watch", "snapshot", "init")


def create_arg_parser():
    parser = argparse.ArgumentParser(
        prog="flatscribe",
        description="Keep a Markdown snapshot (tree + file contents) of your project up to date.",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log every pipeline stage")
    subparsers = parser.add_subparsers(dest="command")

    def _add_root(sub):
        sub.add_argument("root_dir", type=str, nargs="?", default=os.getcwd(), help="Project root directory")

    def _add_output(sub):
        sub.add_argument(
            "-o", "--output",
            type=str,
            default=None,
            help="Output file, relative to the root (overrides output_file in the config)",
        )

    gen = subparsers.add_parser("generate", help="Write the snapshot once")
    _add_root(gen)
    _add_output(gen)

    watch = subparsers.add_parser("watch", help="Write the snapshot, then keep it current")
    _add_root(watch)
    _add_output(watch)
    watch.add_argument("--paused", action="store_true", help="Start with auto-generation paused")

    snap = subparsers.add_parser("snapshot", help="Print a snapshot of selected paths to stdout")
    snap.add_argument("paths", nargs="+", help="Files or directories to include")
    snap.add_argument("--root", dest="root_dir", default=os.getcwd(), help="Project root directory")

    init = subparsers.add_parser("init", help=f"Create a commented {CONFIG_FILE_NAME}")
    _add_root(init)
    return parser


def parse_args(argv=None):
    argv = list(sys.argv[1:] if argv is None else argv)
    # `flatscribe [root]` is shorthand for `flatscribe generate [root]`
    if not any(arg in COMMANDS for arg in argv) and "-h" not in argv and "--help" not in argv:
        flags = [a for a in argv if a in ("-v", "--verbose")]
        rest = [a for a in argv if a not in ("-v", "--verbose")]
        argv = flags + ["generate"] + rest
    return create_arg_parser().parse_args(argv)


def _build(root_dir: Path, output, status=None):
    overrides = {"output_file": output} if output else None
    cache = ConfigCache(root_dir, overrides=overrides)
    coordinator = RegenerationCoordinator(root_dir, cache, status=status)
    return cache, coordinator


def print_summary(result) -> None:
    if not result.file_count:
        print("No matching files found.")

    largest = sorted(result.file_sizes, key=lambda item: (-item[1], item[0]))[:10]
    if largest:
        print("\n--- Top 10 Largest Files (Bytes) ---")
        print(f"{'Rank':<5} | {'Bytes':<10} | {'File Path'}")
        print("-" * 60)
        for i, (rel_path, size) in enumerate(largest):
            print(f"{i+1:<5} | {size:<10} | {rel_path}")
        print("-" * 60)

    print(f"Total files: {result.file_count}")
    print(f"Output size: {result.output_file.stat().st_size} bytes")
    print("-" * 60)


def cmd_generate(root_dir: Path, args) -> int:
    cache, coordinator = _build(root_dir, args.output)
    config = cache.get_resolved()

    print("--- flatscribe ---")
    print(f"Scanning: {root_dir}")
    print(f"Output:   {config.output_path}")

    result = coordinator.generate()
    if not result.succeeded:
        print(f"Error: {result.error}", file=sys.stderr)
        return 1

    print_summary(result)
    print(f"\nSuccess! Snapshot written to: {config.output_path}")
    return 0


def cmd_watch(root_dir: Path, args) -> int:
    status = ConsoleStatus()
    cache, coordinator = _build(root_dir, args.output, status=status)
    gate = PauseGate(paused=args.paused, status=status)
    watcher = ChangeWatcher(root_dir, coordinator, cache, gate=gate)
    source = WatchdogEventSource(root_dir, watcher.channel)

    print("--- flatscribe ---")
    print(f"Watching: {root_dir} (Ctrl-C to stop)")

    consumer = threading.Thread(target=watcher.run, name="flatscribe-watcher", daemon=True)
    source.start()
    consumer.start()

    try:
        if gate.paused:
            status.update(RunState.PAUSED)
        else:
            coordinator.trigger("startup")
        while consumer.is_alive():
            consumer.join(timeout=0.5)
    finally:
        source.stop()
        watcher.stop()
    return 0


def cmd_snapshot(root_dir: Path, args) -> int:
    _, coordinator = _build(root_dir, None)
    try:
        markdown = coordinator.render_selection(args.paths)
    except FlatscribeError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    sys.stdout.write(markdown)
    return 0


def cmd_init(root_dir: Path, args) -> int:
    config_file = root_dir / CONFIG_FILE_NAME
    if config_file.exists():
        print(f"{CONFIG_FILE_NAME} already exists.")
        return 0
    config_file.write_text(config_template(), encoding="utf-8")
    ensure_output_ignored(root_dir, CONFIG_FILE_NAME)
    print(f"Created {CONFIG_FILE_NAME} with default values and comments.")
    return 0


HANDLERS = {
    "generate": cmd_generate,
    "watch": cmd_watch,
    "snapshot": cmd_snapshot,
    "init": cmd_init,
}


def main(argv=None):
    try:
        args = parse_args(argv)
        setup_logging(args.verbose)

        root_dir = Path(args.root_dir).resolve()
        if not root_dir.is_dir():
            print(f"Error: Invalid directory '{root_dir}'", file=sys.stderr)
            sys.exit(1)

        code = HANDLERS[args.command](root_dir, args)
        if code:
            sys.exit(code)

    except KeyboardInterrupt:
        print("\nStopped.")

    except OSError as e:
        print(f"An unexpected error occurred: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
