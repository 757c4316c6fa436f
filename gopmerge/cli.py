#!/usr/bin/env python3
"""
Command line interface for gopmerge.

Workflow:
1. groups  - list recording sessions in a folder
2. files   - show the segments of one session in merge order
3. gop     - measure the GOP interval of a segment
4. merge   - stream-copy a session into one file, cutting on GOP boundaries
5. interactive - menu driven version of the above
"""

import argparse
import asyncio
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

from tqdm import tqdm

from .config import DEFAULT_CONFIG_PATH, load_config, save_config, settings
from .exceptions import GopMergeError
from .grouper import discover_groups, resolve_group, suggested_output_name
from .logging_conf import setup_logging
from .merger import MergeExecutor, merge_files, parse_progress_time
from .probe import FFprobe
from .recipe import build_recipe, render_recipe
from .tools import get_tools

logger = logging.getLogger(__name__)


def default_output_path(directory: str, key: str, extension: str) -> str:
    """Place the merged file next to the source folder, not inside it."""
    source = os.path.abspath(directory)
    return os.path.join(os.path.dirname(source) or ".", suggested_output_name(key, extension))


async def _total_duration(probe: FFprobe, files: List[str], cut_seconds: float) -> Optional[float]:
    durations = await asyncio.gather(*(probe.probe_duration(f) for f in files), return_exceptions=True)
    if any(not isinstance(d, float) for d in durations):
        return None
    return max(sum(durations) - cut_seconds * (len(files) - 1), 0.0)


def run_merge(files: List[str], cut_seconds: float, output_file: str, config: dict, verbose: bool = False) -> bool:
    """Merge with a progress bar driven by ffmpeg's time= status lines."""
    tools = get_tools()
    total = None
    if tools.ffprobe:
        total = asyncio.run(_total_duration(FFprobe(tools, config["gop_scan_limit"]), files, cut_seconds))

    pbar = tqdm(total=round(total, 1) if total else None, unit="s", desc="Merging")
    log_lines: List[str] = []

    def on_progress(line: str):
        log_lines.append(line)
        if verbose:
            tqdm.write(line)
        seconds = parse_progress_time(line)
        if seconds is not None:
            if total:
                seconds = min(seconds, total)
            pbar.update(round(seconds - pbar.n, 1))

    try:
        outcome = asyncio.run(merge_files(
            files,
            cut_seconds,
            output_file,
            on_progress=on_progress,
            executor=MergeExecutor(tools),
            temp_dir=settings.temp_dir,
        ))
    finally:
        pbar.close()

    if outcome.success:
        print(f"\nDone → {outcome.output_path}")
        return True

    if not verbose:
        print("\n".join(log_lines[-20:]))
    print(f"\nError: {outcome.error_message}")
    return False


def cmd_groups(args, config) -> int:
    groups = discover_groups(args.directory, config["extension"], config["delimiter"])
    if not groups:
        print("No sessions found")
        return 0
    for key, count in groups:
        print(f"{key}  ({count} files)")
    return 0


def cmd_files(args, config) -> int:
    files = resolve_group(args.directory, args.key, config["extension"], config["delimiter"])
    if not files:
        print(f"No session {args.key!r} in {args.directory}")
        return 1
    for idx, path in enumerate(files, 1):
        print(f"{idx}. {path}")
    return 0


def cmd_gop(args, config) -> int:
    estimate = asyncio.run(FFprobe(get_tools(), config["gop_scan_limit"]).estimate(args.file))
    print(f"Detected: {estimate.describe()}")
    return 0


def _cut_seconds(args, config, files: List[str]) -> float:
    if args.auto:
        estimate = asyncio.run(FFprobe(get_tools(), config["gop_scan_limit"]).estimate(files[0]))
        print(f"[Auto] {estimate.describe()}")
        return estimate.gop_seconds
    if args.cut is not None:
        return args.cut
    return config["default_cut_seconds"]


def cmd_recipe(args, config) -> int:
    files = resolve_group(args.directory, args.key, config["extension"], config["delimiter"])
    if not files:
        print(f"No session {args.key!r} in {args.directory}")
        return 1
    cut = args.cut if args.cut is not None else config["default_cut_seconds"]
    print(render_recipe(build_recipe(files, cut)), end="")
    return 0


def cmd_merge(args, config) -> int:
    files = resolve_group(args.directory, args.key, config["extension"], config["delimiter"])
    if not files:
        print(f"No session {args.key!r} in {args.directory}")
        return 1
    output = args.output or default_output_path(args.directory, args.key, config["extension"])
    cut = _cut_seconds(args, config, files)
    print(f"Session: {args.key} ({len(files)} files)")
    print(f"Output:  {output}")
    return 0 if run_merge(files, cut, output, config, args.verbose) else 1


def cmd_serve(args, config) -> int:
    import uvicorn

    uvicorn.run("gopmerge.webapp:app", host=args.host, port=args.port)
    return 0


# ---- Interactive mode ----

def clear_screen():
    """Clear terminal screen."""
    os.system("cls" if os.name == "nt" else "clear")


def print_header():
    """Print app header."""
    print("=" * 60)
    print("  GOPMERGE - Join recording segments without re-encoding")
    print("=" * 60)
    print()


def print_menu(title, options):
    """Print a menu and get user choice."""
    print(f"\n{title}")
    print("-" * 40)
    for key, label in options.items():
        print(f"  [{key}] {label}")
    print()
    return input("Select option: ").strip().lower()


def pause():
    input("\nPress Enter to continue...")


def choose_group(directory: str, config: dict) -> Optional[str]:
    groups = discover_groups(directory, config["extension"], config["delimiter"])
    if not groups:
        print("No sessions found!")
        return None
    for i, (key, count) in enumerate(groups, 1):
        print(f"  [{i:2}] {key}  ({count} files)")
    choice = input("\nSession number: ").strip()
    if choice.isdigit() and 1 <= int(choice) <= len(groups):
        return groups[int(choice) - 1][0]
    return None


def show_settings_menu(config: dict) -> dict:
    """Show and edit settings."""
    while True:
        clear_screen()
        print_header()
        print("SETTINGS")
        print("-" * 40)
        print(f"  [1] Extension:          {config['extension']}")
        print(f"  [2] Filename delimiter: {config['delimiter']!r}")
        print(f"  [3] GOP scan limit:     {config['gop_scan_limit']} frames")
        print(f"  [4] Default cut:        {config['default_cut_seconds']:.3f}s")
        print()
        print("  [b] Back to main menu")

        choice = input("\nSelect option: ").strip().lower()

        if choice == "b":
            break
        elif choice == "1":
            val = input("Enter extension (e.g., .mp4): ").strip().lower()
            if val:
                config["extension"] = val if val.startswith(".") else f".{val}"
        elif choice == "2":
            val = input("Enter delimiter: ")
            if len(val) == 1:
                config["delimiter"] = val
        elif choice == "3":
            try:
                val = int(input("Enter frame limit: ").strip())
                if val > 1:
                    config["gop_scan_limit"] = val
            except ValueError:
                pass
        elif choice == "4":
            try:
                val = float(input("Enter cut in seconds (0 = no cut): ").strip())
                if val >= 0:
                    config["default_cut_seconds"] = val
            except ValueError:
                pass

    return config


def interactive(config: dict, config_path: Path):
    """Main interactive loop."""
    state = {"dir": None, "key": None, "files": [], "out": None, "cut": config["default_cut_seconds"]}

    while True:
        clear_screen()
        print_header()
        print(f"  Folder:   {state['dir'] or '(not set)'}")
        print(f"  Session:  {state['key'] or '(not set)'}  ({len(state['files'])} files)")
        print(f"  Cut:      {state['cut']:.3f}s")
        print(f"  Output:   {state['out'] or '(not set)'}")

        options = {
            "1": "Select folder",
            "2": "Select session",
            "3": "Auto-detect GOP",
            "4": "Set cut manually",
            "5": "Choose output path",
            "6": "Merge",
            "7": "Settings",
            "q": "Quit",
        }
        choice = print_menu("MAIN MENU", options)

        try:
            if choice == "q":
                print("\nGoodbye!")
                break
            elif choice == "1":
                path = input("Enter folder path: ").strip()
                if path and os.path.isdir(path):
                    state.update(dir=path, key=None, files=[], out=None)
                else:
                    print("Invalid path!")
                    pause()
            elif choice == "2":
                if not state["dir"]:
                    print("\nPlease select a folder first!")
                    pause()
                    continue
                key = choose_group(state["dir"], config)
                if key:
                    state["key"] = key
                    state["files"] = resolve_group(state["dir"], key, config["extension"], config["delimiter"])
                    state["out"] = default_output_path(state["dir"], key, config["extension"])
            elif choice == "3":
                if not state["files"]:
                    print("\nPick a session first!")
                    pause()
                    continue
                print("\nDetecting…")
                estimate = asyncio.run(FFprobe(get_tools(), config["gop_scan_limit"]).estimate(state["files"][0]))
                state["cut"] = estimate.gop_seconds
                print(f"Detected: {estimate.describe()}")
                pause()
            elif choice == "4":
                try:
                    val = float(input("Cut in seconds (0 = no cut): ").strip())
                    if val >= 0:
                        state["cut"] = val
                except ValueError:
                    pass
            elif choice == "5":
                default = state["out"] or "output" + config["extension"]
                custom = input(f"Output path [{default}]: ").strip()
                state["out"] = custom or default
            elif choice == "6":
                if len(state["files"]) < 2:
                    print("\nNeed at least 2 files!")
                    pause()
                    continue
                if not state["out"]:
                    print("\nChoose an output path!")
                    pause()
                    continue
                confirm = input("Start merge? (y/n): ").strip().lower()
                if confirm == "y":
                    run_merge(state["files"], state["cut"], state["out"], config)
                    pause()
            elif choice == "7":
                config = show_settings_menu(config)
                config_path.parent.mkdir(parents=True, exist_ok=True)
                save_config(config, str(config_path))
        except GopMergeError as e:
            print(f"\nError: {e}")
            pause()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Merge recording segments on GOP boundaries without re-encoding")
    parser.add_argument("--config", default=settings.config_path or str(DEFAULT_CONFIG_PATH), help="YAML/JSON preferences file")
    parser.add_argument("--debug", action="store_true", help="Verbose logging")
    sub = parser.add_subparsers(dest="command")

    p = sub.add_parser("groups", help="List recording sessions in a folder")
    p.add_argument("directory")
    p.set_defaults(func=cmd_groups)

    p = sub.add_parser("files", help="List the segments of a session in merge order")
    p.add_argument("directory")
    p.add_argument("key")
    p.set_defaults(func=cmd_files)

    p = sub.add_parser("gop", help="Detect the GOP interval of a segment")
    p.add_argument("file")
    p.set_defaults(func=cmd_gop)

    p = sub.add_parser("recipe", help="Print the concat list for a session without merging")
    p.add_argument("directory")
    p.add_argument("key")
    p.add_argument("--cut", type=float, help="Seconds to skip into every segment after the first")
    p.set_defaults(func=cmd_recipe)

    p = sub.add_parser("merge", help="Merge a session into one file")
    p.add_argument("directory")
    p.add_argument("key")
    p.add_argument("-o", "--output", help="Output file (default: <key><ext> next to the folder)")
    cut = p.add_mutually_exclusive_group()
    cut.add_argument("--cut", type=float, help="Seconds to skip into every segment after the first")
    cut.add_argument("--auto", action="store_true", help="Detect the cut from the first segment's GOP")
    p.add_argument("-v", "--verbose", action="store_true", help="Show ffmpeg output")
    p.set_defaults(func=cmd_merge)

    p = sub.add_parser("serve", help="Run the HTTP API")
    p.add_argument("--host", default="127.0.0.1")
    p.add_argument("--port", type=int, default=8000)
    p.set_defaults(func=cmd_serve)

    sub.add_parser("interactive", help="Menu driven mode")
    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(settings.log_dir, logging.DEBUG if args.debug else logging.WARNING)
    config = load_config(args.config)
    get_tools()

    if args.command in (None, "interactive"):
        interactive(config, Path(args.config))
        return 0

    try:
        return args.func(args, config)
    except GopMergeError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
