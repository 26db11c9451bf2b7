"""Entry point for the till Textual app."""

from __future__ import annotations

import logging

from textual.logging import TextualHandler

from till.config import LOG_PATH
from till.pos_app import PosApp


def configure_logging(level: int = logging.INFO) -> None:
    """Send log records to the debug file and to the Textual devtools console."""
    file_handler = logging.FileHandler(LOG_PATH, encoding="utf-8")
    file_handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logging.basicConfig(level=level, handlers=[file_handler, TextualHandler()])


def main() -> None:
    """Run the Textual application."""
    configure_logging()
    PosApp().run()


if __name__ == "__main__":
    main()
