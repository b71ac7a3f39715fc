"""Read-only Textual panel for browsing stored subscriptions.

The panel never mutates the store: the running bot is the only writer.
"""

from __future__ import annotations

from typing import Any, Callable, Optional

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import DataTable, Footer, Static

from core.errors import StorageError
from core.ports import SubscriptionStorePort

from .constants import ACCENT, TIME_FORMAT
from .state import PanelState


class SubscriptionsPanelApp(App):
    """Subscriptions table with reload and an inactive-entries toggle."""

    CSS = """
    Screen {
        background: #0f1a21;
        color: #e8eef5;
    }

    #header {
        height: 5;
        padding: 1 4;
        border-bottom: solid #2a3a46;
    }

    #header-left, #header-right {
        width: 1fr;
    }

    #header-right {
        content-align: right top;
        text-align: right;
    }

    .subtle {
        color: #c6d2dd;
    }

    .status-error {
        color: #ff6b6b;
    }

    #subscriptions {
        height: 1fr;
    }
    """

    BINDINGS = [
        ("ctrl+r", "reload", "Reload"),
        ("i", "toggle_inactive", "Show inactive"),
        ("q", "quit", "Quit"),
    ]

    def __init__(self, open_store: Callable[[], Optional[SubscriptionStorePort]], **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._open_store = open_store
        self.panel_state = PanelState()

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal():
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static("read-only", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static("", id="global-check", classes="subtle")
                    yield Static("", id="header-status")
        yield DataTable(id="subscriptions", cursor_type="row", zebra_stripes=True)
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#subscriptions", DataTable)
        table.add_column("user", key="user_id", width=14)
        table.add_column("target", key="target", width=36)
        table.add_column("last commit", key="last_commit_sha", width=12)
        table.add_column("last check", key="last_check_time", width=18)
        table.add_column("active", key="is_active", width=8)
        self._load()

    def action_reload(self) -> None:
        self._load()

    def action_toggle_inactive(self) -> None:
        self.panel_state.show_inactive = not self.panel_state.show_inactive
        self._refresh_table()
        self._refresh_header()

    def _load(self) -> None:
        state = self.panel_state
        try:
            store = self._open_store()
            if store is None:
                state.subscriptions = []
                state.last_global_check = None
                state.error = "store not found"
            else:
                state.subscriptions = store.list_all()
                state.last_global_check = store.get_last_global_check()
                state.error = None
        except StorageError as exc:
            state.subscriptions = []
            state.last_global_check = None
            state.error = f"store error: {exc}"
        self._refresh_table()
        self._refresh_header()

    def _refresh_table(self) -> None:
        table = self.query_one("#subscriptions", DataTable)
        table.clear()
        for subscription in self.panel_state.visible():
            table.add_row(
                str(subscription.user_id),
                subscription.target,
                (subscription.last_commit_sha or "-")[:7],
                subscription.last_check_time.astimezone().strftime(TIME_FORMAT),
                "yes" if subscription.is_active else Text("no", style="dim"),
                key=subscription.id,
            )

    def _refresh_header(self) -> None:
        state = self.panel_state
        status = self.query_one("#header-status", Static)
        status.remove_class("status-error")
        if state.error:
            status.update(state.error)
            status.add_class("status-error")
        else:
            active = sum(1 for sub in state.subscriptions if sub.is_active)
            scope = "all" if state.show_inactive else "active only"
            status.update(f"{active} active / {len(state.subscriptions)} total ({scope})")

        global_check = self.query_one("#global-check", Static)
        if state.last_global_check is None:
            global_check.update("last cycle: never")
        else:
            global_check.update(f"last cycle: {state.last_global_check.astimezone().strftime(TIME_FORMAT)}")

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("COMMIT", ACCENT),
            ("SCOPE > Subscriptions", "bold"),
        )
