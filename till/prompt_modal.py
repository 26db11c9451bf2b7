"""Single-value entry modal screen (amounts, free text and passwords)."""

from __future__ import annotations

from typing import Literal

from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Static

PromptKind = Literal["amount", "text", "secret"]


class PromptModal(ModalScreen[str | None]):
    """Prompt for one value; dismisses with the entered text or ``None`` on cancel."""

    CSS = """
    PromptModal {
        align: center middle;
        background: $background 60%;
    }

    #prompt-dialog {
        width: 56;
        height: auto;
        border: round $secondary;
        background: $panel;
        padding: 1 2;
    }

    #prompt-title {
        text-style: bold;
        margin-bottom: 1;
        color: white;
    }

    #prompt-message {
        color: white;
        margin-bottom: 1;
    }

    #prompt-value {
        border: heavy $secondary;
        padding: 0 1;
        color: white;
        margin-bottom: 1;
    }

    #prompt-error {
        color: #ffb3b3;
        margin-bottom: 1;
    }

    #prompt-help {
        color: #dddddd;
    }
    """

    def __init__(
        self,
        title: str,
        message: str,
        kind: PromptKind = "amount",
        allow_empty: bool = False,
        initial: str = "",
    ) -> None:
        super().__init__()
        self.title_text = title
        self.message = message
        self.kind = kind
        self.allow_empty = allow_empty
        self.value = initial
        self.error = ""

    def compose(self) -> ComposeResult:
        with Container(id="prompt-dialog"):
            yield Static(self.title_text, id="prompt-title")
            yield Static(self.message, id="prompt-message")
            yield Static(id="prompt-value")
            yield Static(id="prompt-error")
            yield Static("Enter confirm. Backspace delete. Esc/Ctrl+C cancel.", id="prompt-help")

    def on_mount(self) -> None:
        self._refresh_content()

    def on_key(self, event: Key) -> None:
        if event.key in {"escape", "ctrl+c"}:
            self.dismiss(None)
            event.stop()
            return

        if event.key == "enter":
            self._confirm()
            event.stop()
            return

        if event.key == "backspace":
            if self.value:
                self.value = self.value[:-1]
                self.error = ""
                self._refresh_content()
            event.stop()
            return

        if event.is_printable and event.character and self._accepts(event.character):
            if len(self.value) < 64:
                self.value += event.character
            self.error = ""
            self._refresh_content()
            event.stop()

    def _accepts(self, char: str) -> bool:
        if self.kind != "amount":
            return True
        if char == ".":
            return "." not in self.value
        return char.isdigit()

    def _confirm(self) -> None:
        value = self.value.strip()
        if not value and not self.allow_empty:
            self.error = "A value is required."
            self._refresh_content()
            return
        if self.kind == "amount" and value in {"."}:
            self.error = "Enter a valid amount."
            self._refresh_content()
            return
        self.dismiss(value)

    def _refresh_content(self) -> None:
        value_widget = self.query_one("#prompt-value", Static)
        error_widget = self.query_one("#prompt-error", Static)
        shown = "*" * len(self.value) if self.kind == "secret" else self.value
        value_widget.update(shown or "")
        error_widget.update(self.error or "")
