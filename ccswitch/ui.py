import copy
import json
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from InquirerPy import inquirer
from InquirerPy.base.control import Choice
from InquirerPy.separator import Separator
from prompt_toolkit.validation import ValidationError, Validator
from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from .health import ProbeResult, mask_token
from .models import AUTH_TOKEN_KEY, ENV_KEY, ApiConfig
from .workflows import ConfigSnapshot, WizardStep

TYPED_ORDINAL = "__typed_ordinal__"


class CheckValidator(Validator):
    """Adapts a ``str -> error message | None`` check to prompt_toolkit."""

    def __init__(self, check: Callable[[str], Optional[str]]):
        self.check = check

    def validate(self, document) -> None:
        error = self.check(document.text.strip())
        if error:
            raise ValidationError(message=error, cursor_position=len(document.text))


def masked_view(config: ApiConfig) -> Dict[str, Any]:
    """Copy of the stored entry with its token masked, for previews."""
    data = copy.deepcopy(config.to_dict())
    section = data.get("config")
    env = section.get(ENV_KEY) if isinstance(section, dict) else None
    if isinstance(env, dict) and AUTH_TOKEN_KEY in env:
        env[AUTH_TOKEN_KEY] = mask_token(env[AUTH_TOKEN_KEY])
    if "authToken" in data:
        data["authToken"] = mask_token(data["authToken"])
    return data


class SwitcherUI:
    """Console output and interactive prompts."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def display_message(self, content: Any, style: str = None) -> None:
        self.console.print(content, style=style)

    def print_success(self, msg: str) -> None:
        self.console.print(f"[bold green]✓[/] {msg}")

    def print_error(self, msg: str) -> None:
        self.console.print(f"[bold red]✗[/] {msg}")

    def print_warning(self, msg: str) -> None:
        self.console.print(f"[bold yellow]⚠[/] {msg}")

    def print_info(self, msg: str) -> None:
        self.console.print(f"[cyan]{msg}[/]")

    def print_json(self, data: Any, title: str = "") -> None:
        syntax = Syntax(json.dumps(data, ensure_ascii=False, indent=2), "json", theme="monokai", line_numbers=False)
        if title:
            self.console.print(Panel(syntax, title=title, border_style="blue"))
        else:
            self.console.print(syntax)

    def print_config_preview(self, config: ApiConfig, title: str) -> None:
        self.print_json(masked_view(config), title)

    @staticmethod
    def config_label(index: int, config: ApiConfig, width: int, active: bool) -> str:
        label = f"{index + 1}. [{config.name.ljust(width)}]  {mask_token(config.auth_token)}  {config.base_url or ''}"
        return f"{label} (current)" if active else label

    def _config_choices(self, snapshot: ConfigSnapshot) -> List[Union[Choice, Separator]]:
        width = max((len(config.name) for config in snapshot.configs), default=0)
        return [
            Choice(value=index, name=self.config_label(index, config, width, snapshot.is_active(config)))
            for index, config in enumerate(snapshot.configs)
        ]

    def display_configs(self, snapshot: ConfigSnapshot) -> None:
        table = Table(title="Available API configurations", box=box.ROUNDED, header_style="bold magenta")
        table.add_column("#", style="dim", width=3)
        table.add_column("Name", style="cyan")
        table.add_column("Token", style="yellow")
        table.add_column("Base URL", style="green")
        table.add_column("Model", style="blue")
        for index, config in enumerate(snapshot.configs, start=1):
            name = escape(config.name)
            if snapshot.is_active(config):
                name += " [green](current)[/]"
            table.add_row(
                str(index),
                name,
                mask_token(config.auth_token),
                escape(config.base_url or ""),
                escape(config.model or "default"),
            )
        self.console.print(table)

    def select_config(self, message: str, snapshot: ConfigSnapshot, allow_typed: bool = False) -> Union[int, str]:
        """Menu over the configurations; returns a 0-based index or ``TYPED_ORDINAL``."""
        choices: List[Union[Choice, Separator]] = self._config_choices(snapshot)
        if allow_typed:
            choices.append(Separator())
            choices.append(Choice(value=TYPED_ORDINAL, name="Enter number..."))
        return inquirer.select(
            message=message,
            choices=choices,
            pointer="❯",
            qmark="",
            amark="",
            max_height="100%",
            instruction="(↑↓ to move, Enter to select)",
        ).execute()

    def ask_step(self, step: WizardStep) -> str:
        kwargs = {
            "message": step.message,
            "default": step.default,
            "qmark": "",
            "amark": "",
        }
        if step.validate is not None:
            kwargs["validate"] = CheckValidator(step.check)
        if step.secret:
            return inquirer.secret(**kwargs).execute()
        return inquirer.text(**kwargs).execute()

    def ask_text(self, message: str, check: Optional[Callable[[str], Optional[str]]] = None, default: str = "") -> str:
        return self.ask_step(WizardStep(key="value", message=message, validate=check, default=default))

    def confirm(self, message: str, default: bool = False) -> bool:
        return inquirer.confirm(message=message, default=default, qmark="", amark="").execute()

    def display_config_details(self, config: ApiConfig) -> None:
        table = Table(box=box.SIMPLE, show_header=False)
        table.add_column("Field", style="bold cyan")
        table.add_column("Value")
        table.add_row("Name", escape(config.name))
        table.add_row("API Key", mask_token(config.auth_token))
        table.add_row("Base URL", escape(config.base_url or ""))
        table.add_row("Model", escape(config.model or "default"))
        self.console.print(Panel.fit(table, title="[bold cyan]Active configuration[/]", border_style="cyan"))

    def display_probe_results(self, results: Sequence[ProbeResult]) -> None:
        table = Table(title="API health", box=box.ROUNDED, header_style="bold magenta")
        table.add_column("Status", width=8)
        table.add_column("Names", style="cyan")
        table.add_column("Base URL", style="green")
        table.add_column("Endpoint", style="dim")
        table.add_column("Latency", justify="right")
        table.add_column("Token", style="yellow")
        table.add_column("Detail", style="dim")

        for result in results:
            status = "[bold green]OK[/]" if result.reachable else "[bold red]FAIL[/]"
            latency = f"{result.latency_ms:.0f} ms" if result.latency_ms is not None else "-"
            if result.reachable:
                detail = f"HTTP {result.status_code}"
            elif result.timed_out:
                detail = f"[yellow]{escape(result.error)}[/]"
            else:
                detail = f"[red]{escape(result.error)}[/]"
            endpoint = result.endpoint[len(result.base_url):] or "/"
            table.add_row(
                status,
                escape(", ".join(result.names)),
                escape(result.base_url),
                escape(endpoint),
                latency,
                escape(result.masked_token),
                detail,
            )

        self.console.print(table)
        reachable = sum(1 for result in results if result.reachable)
        style = "green" if reachable == len(results) else "yellow"
        self.console.print(f"{reachable}/{len(results)} reachable", style=style)
