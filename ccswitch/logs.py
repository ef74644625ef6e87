import logging

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_MARK = "_ccs_handler"


def configure_logging(debug: bool = False, console: Console = None) -> None:
    """Route log records through rich on stderr; safe to call more than once."""
    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.WARNING)

    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_MARK, False):
            root.removeHandler(handler)
            handler.close()

    handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=debug,
        show_path=debug,
        markup=False,
        rich_tracebacks=debug,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    setattr(handler, _HANDLER_MARK, True)
    root.addHandler(handler)

    # httpx logs every request at INFO; keep it for --debug only
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)
