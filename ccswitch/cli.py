import argparse
import logging
import os
from pathlib import Path
from typing import List, Optional

from rich.markup import escape

from . import __version__
from .commands import EXIT_ERROR, EXIT_OK, CommandDispatcher
from .config import AppConfig, ConfigManager
from .errors import ConfigFileError
from .logs import configure_logging
from .store import ConfigStore, default_config_dir
from .ui import SwitcherUI

logger = logging.getLogger(__name__)

COMMANDS_HELP = """commands:
  list, ls [N]            list configurations and switch (optionally to number N)
  add                     add a new configuration
  remove, rm [N]          remove a configuration
  o api | o setting       open apiConfigs.json / settings.json in an editor
  health                  probe every configured base URL
  notify setup|status|test
                          manage webhook notifications
"""


def build_arg_parser() -> argparse.ArgumentParser:
    """Build the CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="ccs",
        description="Claude Code API configuration switcher",
        epilog=COMMANDS_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-v", "--version", action="version", version=f"ccs version: {__version__}")
    parser.add_argument(
        "--config-dir",
        help="Directory holding apiConfigs.json and settings.json (default: $CCS_CONFIG_DIR or ~/.claude)",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("command", nargs="?", help="Command to run")
    parser.add_argument("args", nargs=argparse.REMAINDER, help=argparse.SUPPRESS)
    return parser


def split_global_options(args: argparse.Namespace) -> argparse.Namespace:
    """Pull ``--debug``/``--config-dir`` given after the command out of its arguments."""
    options = argparse.ArgumentParser(add_help=False, allow_abbrev=False)
    options.add_argument("--config-dir")
    options.add_argument("--debug", action="store_true")
    known, rest = options.parse_known_args(args.args)
    args.config_dir = known.config_dir or args.config_dir
    args.debug = args.debug or known.debug
    args.args = rest
    return args


def resolve_config_dir(cli_value: Optional[str]) -> Path:
    if cli_value:
        return Path(os.path.expanduser(cli_value))
    return default_config_dir()


def load_preferences(config_manager: ConfigManager, ui: SwitcherUI) -> AppConfig:
    try:
        return config_manager.load_config()
    except ConfigFileError as exc:
        ui.print_warning(f"{escape(str(exc))}; using default preferences")
        return AppConfig()


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_arg_parser()
    args = split_global_options(parser.parse_args(argv))

    if not args.command:
        parser.print_help()
        return EXIT_OK

    ui = SwitcherUI()
    config_dir = resolve_config_dir(args.config_dir)
    config_manager = ConfigManager(config_dir)
    preferences = load_preferences(config_manager, ui)
    configure_logging(debug=args.debug or preferences.debug)
    logger.debug("Using config directory %s", config_dir)

    dispatcher = CommandDispatcher(ConfigStore(config_dir), ui, config_manager, preferences=preferences)
    exit_code = dispatcher.execute(args.command, args.args)
    if exit_code is None:
        ui.print_error(f"Unknown command '{escape(args.command)}'")
        ui.print_info("\nAvailable commands:")
        for name in dispatcher.command_names():
            ui.display_message(f"  {name}")
        ui.print_info("\nUse --help for more information")
        return EXIT_ERROR
    return exit_code
