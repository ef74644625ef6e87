import logging
import os
import shlex
import subprocess
import sys
from pathlib import Path
from typing import Callable, Dict, List, Optional

from rich.markup import escape

from .config import AppConfig, ConfigManager
from .errors import SwitcherError
from .health import HealthProber
from .notify import NotifyManager, validate_webhook_url
from .store import ConfigStore
from .ui import TYPED_ORDINAL, SwitcherUI
from .workflows import ConfigWorkflows, ordinal_validator, parse_ordinal, run_wizard

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_CANCELLED = 130

Handler = Callable[[List[str]], int]


def open_in_editor(path: Path, editor: str = "") -> None:
    """Open ``path`` with the configured editor, $VISUAL/$EDITOR, or the platform opener."""
    command = editor or os.environ.get("VISUAL") or os.environ.get("EDITOR")
    try:
        if command:
            subprocess.run([*shlex.split(command), str(path)], check=False)
        elif sys.platform == "darwin":
            subprocess.Popen(["open", str(path)], start_new_session=True)
        elif os.name == "nt":
            os.startfile(str(path))  # type: ignore[attr-defined]
        else:
            subprocess.Popen(["xdg-open", str(path)], start_new_session=True)
    except OSError as exc:
        raise SwitcherError(f"Failed to open {path}: {exc}") from exc


class CommandDispatcher:
    """Maps command names and aliases to handlers returning exit codes."""

    def __init__(
        self,
        store: ConfigStore,
        ui: SwitcherUI,
        config_manager: ConfigManager,
        preferences: Optional[AppConfig] = None,
        prober_factory: Optional[Callable[[AppConfig], HealthProber]] = None,
        notify_manager: Optional[NotifyManager] = None,
        opener: Callable[[Path, str], None] = open_in_editor,
    ):
        self.store = store
        self.ui = ui
        self.config_manager = config_manager
        self.preferences = preferences or AppConfig()
        self.workflows = ConfigWorkflows(store)
        self.prober_factory = prober_factory or self._default_prober
        self.notify_manager = notify_manager or NotifyManager(store, config_manager)
        self.opener = opener
        self.handlers: Dict[str, Handler] = {
            "list": self._handle_list,
            "ls": self._handle_list,
            "add": self._handle_add,
            "remove": self._handle_remove,
            "rm": self._handle_remove,
            "o": self._handle_open,
            "health": self._handle_health,
            "notify": self._handle_notify,
        }
        self.aliases = {"ls": "list", "rm": "remove"}

    @staticmethod
    def _default_prober(preferences: AppConfig) -> HealthProber:
        return HealthProber(
            timeout=preferences.probe_timeout,
            max_workers=preferences.max_workers,
            proxy=preferences.proxy,
        )

    def command_names(self) -> List[str]:
        return [name for name in self.handlers if name not in self.aliases]

    def execute(self, command_name: str, command_args: List[str]) -> Optional[int]:
        """Run a command. Returns None when the command is unknown."""
        handler = self.handlers.get(command_name)
        if not handler:
            return None
        try:
            return handler(list(command_args))
        except SwitcherError as exc:
            logger.debug("%s failed", command_name, exc_info=True)
            self.ui.print_error(escape(str(exc)))
            return EXIT_ERROR
        except (KeyboardInterrupt, EOFError):
            self.ui.display_message("\nOperation cancelled.", style="yellow")
            return EXIT_CANCELLED

    def _cancelled(self) -> int:
        self.ui.display_message("\nOperation cancelled", style="yellow")
        return EXIT_OK

    def _handle_list(self, args: List[str]) -> int:
        self.store.ensure_dir()
        snapshot = self.workflows.snapshot()
        if not snapshot.configs:
            self.ui.print_warning("No API configurations found")
            return EXIT_OK

        if snapshot.active:
            self.ui.display_message(f"Current configuration: [bold]{escape(snapshot.active.name)}[/]\n", style="green")

        size = len(snapshot.configs)
        if args:
            index = parse_ordinal(args[0], size)
        else:
            picked = self.ui.select_config("Select a configuration to switch to:", snapshot, allow_typed=True)
            if picked == TYPED_ORDINAL:
                self.ui.display_configs(snapshot)
                answer = self.ui.ask_text(f"Enter configuration number (1-{size}):", ordinal_validator(size))
                index = parse_ordinal(answer, size)
            else:
                index = picked

        selected = snapshot.configs[index]
        if snapshot.is_active(selected):
            self.ui.print_warning(f'Configuration "{escape(selected.name)}" is already active')
            return EXIT_OK

        self.ui.print_config_preview(selected, "Selected configuration")
        if not self.ui.confirm("Switch to this configuration?", default=True):
            return self._cancelled()

        self.workflows.switch_to(selected, snapshot)
        self.ui.print_success(f"Switched to configuration: {escape(selected.name)}")
        self.ui.display_config_details(selected)
        return EXIT_OK

    def _handle_add(self, args: List[str]) -> int:
        self.store.ensure_dir()
        configs = self.store.load_api_configs(strict=True)
        answers = run_wizard(
            self.workflows.add_steps(configs),
            self.ui.ask_step,
            lambda message: self.ui.print_error(escape(message)),
        )
        new_config = self.workflows.build_config(answers)

        self.ui.print_config_preview(new_config, "New configuration")
        if not self.ui.confirm("Add this configuration?", default=True):
            return self._cancelled()

        total = self.workflows.add(new_config)
        self.ui.print_success(f"Added configuration: {escape(new_config.name)}")
        self.ui.print_info(f"{total} configuration(s) in total")
        return EXIT_OK

    def _handle_remove(self, args: List[str]) -> int:
        self.store.ensure_dir()
        snapshot = self.workflows.snapshot(strict=True)
        if not snapshot.configs:
            self.ui.print_warning("No API configurations found")
            return EXIT_OK

        if args:
            index = parse_ordinal(args[0], len(snapshot.configs))
        else:
            index = self.ui.select_config("Select a configuration to remove:", snapshot)
        selected = snapshot.configs[index]

        self.ui.print_config_preview(selected, "Configuration to remove")
        if snapshot.is_active(selected):
            self.ui.print_warning("You are removing the currently active configuration!")
        if not self.ui.confirm("Remove this configuration?", default=False):
            return self._cancelled()

        outcome = self.workflows.remove(index, snapshot)
        self.ui.print_success(f"Removed configuration: {escape(outcome.removed.name)}")
        self.ui.print_info(f"{outcome.remaining} configuration(s) in total")
        if outcome.was_active and outcome.remaining > 0:
            self.ui.print_warning("The active configuration was removed, run `ccs list` to switch to another one")
        return EXIT_OK

    def _handle_open(self, args: List[str]) -> int:
        targets = {"api": self.store.api_configs_file, "setting": self.store.settings_file}
        target = args[0] if args else ""
        if target not in targets:
            self.ui.print_error("Usage: ccs o api|setting")
            return EXIT_ERROR

        path = targets[target]
        if self.store.ensure_template(path):
            self.ui.print_success(f"Created example file {escape(str(path))}, edit it as needed")
        self.ui.print_info(f"Opening: {escape(str(path))}")
        self.opener(path, self.preferences.editor)
        return EXIT_OK

    def _handle_health(self, args: List[str]) -> int:
        configs = self.store.load_api_configs()
        if not configs:
            self.ui.print_warning("No API configurations found")
            return EXIT_OK

        prober = self.prober_factory(self.preferences)
        with self.ui.console.status("Probing API endpoints..."):
            results = prober.probe_all(configs)
        if not results:
            self.ui.print_warning("No configuration has a base URL to probe")
            return EXIT_OK
        self.ui.display_probe_results(results)
        return EXIT_OK

    def _handle_notify(self, args: List[str]) -> int:
        action = args[0] if args else "status"
        manager = self.notify_manager

        if action == "setup":
            url = args[1] if len(args) > 1 else self.ui.ask_text("Webhook URL:", validate_webhook_url)
            if manager.setup(url):
                self.ui.print_success(f"Installed Stop hook in {escape(str(self.store.settings_file))}")
            self.ui.print_success("Webhook saved")
            return EXIT_OK

        if action == "status":
            status = manager.status()
            state = "[green]configured[/]" if status.configured else "[yellow]not configured[/]"
            hook = "[green]installed[/]" if status.hook_installed else "[yellow]not installed[/]"
            self.ui.display_message(f"Webhook: {state} {escape(status.webhook)}")
            self.ui.display_message(f"Stop hook: {hook}")
            return EXIT_OK

        if action == "test":
            status_code = manager.send_test()
            self.ui.print_success(f"Test notification sent (HTTP {status_code})")
            return EXIT_OK

        if action == "send":
            try:
                manager.send_finished()
            except SwitcherError as exc:
                logger.warning("Notification not delivered: %s", exc)
            return EXIT_OK

        self.ui.print_error(f"Unknown notify action '{escape(action)}', use: setup, status, test")
        return EXIT_ERROR
