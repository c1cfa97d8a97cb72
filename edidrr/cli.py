"""edidrr command-line interface"""

import argparse
import sys
from pathlib import Path
from typing import NoReturn, Optional

from edidrr import __version__
from edidrr.backend.factory import displayBackend_create, pointerBackend_create
from edidrr.common.config import Config, ConfigLoader
from edidrr.common.logging_setup import logging_setup
from edidrr.common.settings import settings
from edidrr.input.devices import (
    EvdevRangeBackend,
    inputDeviceIdentity_get,
    inputDevicePaths_list,
    inputDevices_read,
)
from edidrr.layout.codec import layoutConfig_parse, layoutConfig_serialize
from edidrr.layout.model import LayoutConfig
from edidrr.layout.resolver import LayoutResolver
from edidrr.runtime import LayoutRuntime, PointerMapper

STDIO_PATH = "-"


def parser_build() -> argparse.ArgumentParser:
    """
    Build the argument parser

    Returns:
        Configured parser
    """
    parser = argparse.ArgumentParser(
        prog="edidrr",
        description="Save and restore multi-display layouts keyed by EDID identity",
    )

    parser.add_argument("--version", action="version", version=f"edidrr {__version__}")

    parser.add_argument(
        "-i",
        "--input",
        type=str,
        nargs="?",
        const="",
        default=None,
        metavar="FILE",
        help="Apply a saved layout ('-' for stdin, no value for the configured layout file)",
    )

    parser.add_argument(
        "-o",
        "--output",
        type=str,
        nargs="?",
        const="",
        default=None,
        metavar="FILE",
        help="Write the live layout ('-' for stdout, no value for the configured layout file)",
    )

    parser.add_argument(
        "-t",
        "--toggle",
        action="append",
        default=[],
        metavar="NAME",
        help="Toggle output by name or identity (requires --input; '-' reads stdin)",
    )

    parser.add_argument(
        "-e",
        "--enable",
        action="append",
        default=[],
        metavar="NAME",
        help="Enable output by name or identity (requires --input; '-' reads stdin)",
    )

    parser.add_argument(
        "-d",
        "--disable",
        action="append",
        default=[],
        metavar="NAME",
        help="Disable output by name or identity (requires --input; '-' reads stdin)",
    )

    parser.add_argument(
        "--list-config-outputs",
        action="append",
        default=[],
        metavar="FILE",
        help="List output names found in a saved layout (repeatable)",
    )

    parser.add_argument(
        "--list-active-outputs",
        action="store_true",
        help="List names of the active displays",
    )

    parser.add_argument(
        "--map-pointer",
        type=str,
        default=None,
        metavar="DEVICE",
        help="Bind an XInput pointer device (id or name) to one display",
    )

    parser.add_argument(
        "--to",
        type=str,
        default=None,
        metavar="NAME",
        help="Display for --map-pointer: connector name, derived name or identity",
    )

    parser.add_argument(
        "--evdev-range",
        type=str,
        default=None,
        metavar="PATH",
        help="Read the --map-pointer device range from this evdev node",
    )

    parser.add_argument(
        "--list-input-devices",
        action="store_true",
        help="List evdev input devices with their identities",
    )

    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config file (default: search standard locations)",
    )

    parser.add_argument(
        "--display", type=str, default=None, help="X11 display name (overrides config)"
    )

    parser.add_argument(
        "--debug", action="store_true", help="Enable debug logging (overrides config)"
    )

    parser.add_argument(
        "--info", action="store_true", help="Enable info logging (overrides config)"
    )

    parser.add_argument(
        "--warning", action="store_true", help="Enable warning logging (overrides config)"
    )

    parser.add_argument(
        "--error", action="store_true", help="Enable error logging (overrides config)"
    )

    parser.add_argument(
        "--critical", action="store_true", help="Enable critical logging (overrides config)"
    )

    return parser


def logLevelOverride_get(args: argparse.Namespace) -> str | None:
    """
    Resolve explicit log level override flags.

    Args:
        args: Parsed CLI args.

    Returns:
        Selected log level or None.
    """
    if args.critical:
        return "CRITICAL"
    if args.error:
        return "ERROR"
    if args.warning:
        return "WARNING"
    if args.info:
        return "INFO"
    if args.debug:
        return "DEBUG"
    return None


def actionRequested_check(args: argparse.Namespace) -> bool:
    """True if any option asks for work to be done"""
    return bool(
        args.input is not None
        or args.output is not None
        or args.list_config_outputs
        or args.list_active_outputs
        or args.map_pointer
        or args.list_input_devices
    )


def arguments_validate(parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    """Reject option combinations that cannot be honoured"""
    if (args.toggle or args.enable or args.disable) and args.input is None:
        parser.error("--toggle/--enable/--disable require --input")
    if args.map_pointer and not args.to:
        parser.error("--map-pointer requires --to")
    if args.to and not args.map_pointer:
        parser.error("--to requires --map-pointer")
    if args.evdev_range and not args.map_pointer:
        parser.error("--evdev-range requires --map-pointer")


def layoutPath_resolve(value: str, config: Config) -> str:
    """Map an empty file option to the configured layout file"""
    if value == "":
        return str(Path(config.layout.layout_file).expanduser())
    return value


def text_read(path: str) -> str:
    """
    Read a whole file, '-' meaning stdin

    Raises:
        OSError: If the file cannot be opened
    """
    if path == STDIO_PATH:
        return sys.stdin.read()
    with open(path, "r") as f:
        return f.read()


def text_write(path: str, content: str) -> None:
    """
    Write a whole file, '-' meaning stdout

    Raises:
        OSError: If the file cannot be opened
    """
    if path == STDIO_PATH:
        sys.stdout.write(content)
        return
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w") as f:
        f.write(content)


def names_expand(names: list[str]) -> list[str]:
    """Replace each '-' entry with one line read from stdin"""
    expanded: list[str] = []
    for name in names:
        if name == STDIO_PATH:
            name = sys.stdin.readline().strip()
        expanded.append(name)
    return expanded


def layoutFile_load(path: str) -> LayoutConfig:
    """Read and parse one layout file"""
    return layoutConfig_parse(text_read(path))


def runtime_create(config: Config) -> LayoutRuntime:
    """Build the layout runtime from the loaded configuration"""
    backend = displayBackend_create(
        "x11", config.display.name, config.display.pixels_per_millimeter
    )
    return LayoutRuntime(backend, LayoutResolver(config.layout.rate_tolerance_hz))


def commands_run(args: argparse.Namespace, config: Config) -> None:
    """
    Run the requested actions in a fixed order: apply, snapshot, listings,
    pointer mapping.

    Args:
        args: Parsed CLI args.
        config: Loaded configuration.
    """
    runtime = runtime_create(config)

    if args.input is not None:
        saved = layoutFile_load(layoutPath_resolve(args.input, config))
        toggles = names_expand(args.toggle)
        enables = names_expand(args.enable)
        disables = names_expand(args.disable)
        if toggles or enables or disables:
            runtime.update_run(saved, toggles, enables, disables)
        else:
            runtime.layout_apply(saved)

    if args.output is not None:
        snapshot = runtime.snapshot_take()
        text_write(layoutPath_resolve(args.output, config), layoutConfig_serialize(snapshot))

    if args.list_config_outputs or args.list_active_outputs:
        configs = [layoutFile_load(path) for path in args.list_config_outputs]
        for name in runtime.outputNames_list(configs, args.list_active_outputs):
            print(name)

    if args.list_input_devices:
        for info in inputDevices_read(inputDevicePaths_list()):
            print(f"{info.path}\t{inputDeviceIdentity_get(info)}\t{info.name}")

    if args.map_pointer:
        mapper = PointerMapper(
            displayBackend_create("x11", config.display.name, config.display.pixels_per_millimeter),
            pointerBackend_create("x11", config.display.name),
            EvdevRangeBackend() if args.evdev_range else None,
        )
        mapper.pointer_map(args.map_pointer, args.to, args.evdev_range)


def main(argv: Optional[list[str]] = None) -> NoReturn:
    """
    Main entry point for the edidrr command

    Args:
        argv: Argument list, defaults to sys.argv[1:].
    """
    parser = parser_build()
    args = parser.parse_args(argv)

    arguments_validate(parser, args)
    if not actionRequested_check(args):
        parser.print_usage()
        sys.exit(0)

    try:
        config = ConfigLoader.configWithOverrides_load(
            Path(args.config) if args.config else None,
            display=args.display,
            log_level=logLevelOverride_get(args),
        )
        settings.initialize(config)
        logging_setup(config.logging.level, config.logging.format, config.logging.file)
        commands_run(args, config)
        sys.exit(0)

    except KeyboardInterrupt:
        sys.exit(130)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
