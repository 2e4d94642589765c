"""Main Starboard TUI application."""

import logging
import os
import webbrowser
from typing import Callable, Optional

from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.reactive import reactive
from textual.screen import ModalScreen
from textual.widgets import Button, DataTable, Footer, Header, Markdown, Static
from textual.widgets.data_table import CellDoesNotExist

from starboard.clients import GitHubClient
from starboard.config import StarboardConfig
from starboard.errors import FetchError, RepositoryNotFoundError
from starboard.live import (
    MockLiveServer,
    PushSource,
    RefreshCoordinator,
    RepositoryFetcher,
    StarStore,
    SubscriptionManager,
)
from starboard.models import RepositoryDetail, RepositorySummary, format_stars


logger = logging.getLogger(__name__)

HELP_TEXT = """
# Starboard Help

Star counts in the list are live: every repository has its own feed
and a row is redrawn as soon as a new count arrives.

| Key | Action |
|-----|--------|
| `r` | Refresh the repository list and reopen every feed |
| `enter` | Show details for the selected repository |
| `?` | Show this help |
| `q` | Quit |

A refresh that fails keeps the previous list on screen. Repositories whose
feed could not be opened keep the star count from the last refresh.
"""


class LiveStatusWidget(Static):
    """One-line summary of the live layer."""
    
    organisation: reactive[str] = reactive("")
    live_count: reactive[int] = reactive(0)
    generation: reactive[int] = reactive(0)
    summary: reactive[str] = reactive("Loading...")
    
    def _render_status(self) -> None:
        self.update(
            f"🏢 {self.organisation} | ⭐ Live feeds: {self.live_count} | "
            f"Generation {self.generation} | {self.summary}"
        )
    
    def on_mount(self) -> None:
        self._render_status()
    
    def watch_organisation(self, value: str) -> None:
        self._render_status()
    
    def watch_live_count(self, value: int) -> None:
        self._render_status()
    
    def watch_generation(self, value: int) -> None:
        self._render_status()
    
    def watch_summary(self, value: str) -> None:
        self._render_status()


class HelpScreen(ModalScreen):
    """Modal with key bindings and behaviour notes."""
    
    CSS = """
    HelpScreen {
        align: center middle;
    }
    
    #help-dialog {
        width: 70;
        height: auto;
        max-height: 80%;
        background: $surface;
        border: solid $primary;
        padding: 1 2;
    }
    
    #help-dialog Button {
        margin-top: 1;
    }
    """
    
    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("q", "close", "Close"),
    ]
    
    def compose(self) -> ComposeResult:
        with Vertical(id="help-dialog"):
            with VerticalScroll(id="help-scroll"):
                yield Markdown(HELP_TEXT)
            yield Button("Close", id="close-btn")
    
    @on(Button.Pressed, "#close-btn")
    def on_close(self) -> None:
        self.dismiss()
    
    def action_close(self) -> None:
        self.dismiss()


class RepositoryDetailScreen(ModalScreen):
    """Modal screen showing one repository's details."""
    
    BINDINGS = [
        Binding("escape", "close", "Close"),
        Binding("q", "close", "Close"),
        Binding("o", "open_browser", "Open in Browser"),
    ]
    
    CSS = """
    RepositoryDetailScreen {
        align: center middle;
    }
    
    #detail-dialog {
        width: 80%;
        height: auto;
        max-height: 80%;
        background: $surface;
        border: solid $primary;
    }
    
    #detail-header {
        height: auto;
        padding: 1;
        background: $primary-darken-2;
    }
    
    #detail-title {
        text-style: bold;
    }
    
    #detail-info {
        height: auto;
        padding: 1;
    }
    
    #detail-footer {
        height: 3;
        padding: 0 1;
        align: left middle;
    }
    
    #detail-footer Button {
        margin: 0 1;
    }
    """
    
    def __init__(
        self,
        repository: RepositorySummary,
        fetcher: RepositoryFetcher,
        star_count: Callable[[], int],
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.repository = repository
        self.fetcher = fetcher
        self.star_count = star_count  # live value at the time the detail arrives
        self.detail: Optional[RepositoryDetail] = None
    
    def compose(self) -> ComposeResult:
        with Vertical(id="detail-dialog"):
            with Horizontal(id="detail-header"):
                yield Static(f"📦 {self.repository.full_name}", id="detail-title")
            yield Static("Loading details...", id="detail-info", markup=False)
            with Horizontal(id="detail-footer"):
                yield Button("Close", id="btn-close", variant="default")
                if self.repository.html_url:
                    yield Button("🌐 Browser", id="btn-open-browser", variant="primary")
    
    def on_mount(self) -> None:
        self.load_detail()
    
    @work(exclusive=True, thread=True)
    def load_detail(self) -> None:
        """Fetch the detail in a background thread."""
        try:
            detail = self.fetcher.fetch_detail(self.repository.id)
        except FetchError as e:
            logger.warning("Loading details for repository %d failed: %s", self.repository.id, e)
            self.app.call_from_thread(self.show_error, str(e))
            return
        self.app.call_from_thread(self.show_detail, detail)
    
    def show_detail(self, detail: RepositoryDetail) -> None:
        self.detail = detail
        lines = []
        if detail.description:
            lines.append(detail.description)
            lines.append("")
        try:
            star_count = self.star_count()
        except RepositoryNotFoundError:
            star_count = detail.star_count
        lines.append(f"⭐ Stars: {format_stars(star_count)}")
        lines.append(f"🍴 Forks: {format_stars(detail.forks_count)}")
        lines.append(f"👀 Watchers: {format_stars(detail.watchers_count)}")
        lines.append(f"❗ Open issues: {format_stars(detail.open_issues_count)}")
        if detail.language:
            lines.append(f"💻 Language: {detail.language}")
        lines.append(f"🌿 Default branch: {detail.default_branch}")
        if detail.topics:
            lines.append(f"🏷  Topics: {', '.join(detail.topics)}")
        if detail.updated_at:
            lines.append(f"🔄 Updated: {detail.updated_at.strftime('%Y-%m-%d %H:%M')}")
        self.query_one("#detail-info", Static).update("\n".join(lines))
    
    def show_error(self, message: str) -> None:
        self.query_one("#detail-info", Static).update(f"Could not load details: {message}")
    
    @on(Button.Pressed, "#btn-close")
    def on_close_pressed(self) -> None:
        self.dismiss()
    
    @on(Button.Pressed, "#btn-open-browser")
    def on_open_browser_pressed(self) -> None:
        self.action_open_browser()
    
    def action_close(self) -> None:
        self.dismiss()
    
    def action_open_browser(self) -> None:
        if self.repository.html_url:
            webbrowser.open(self.repository.html_url)
            self.notify(f"Opening {self.repository.html_url[:50]}...")
        else:
            self.notify("No URL available", severity="warning")


class StarboardApp(App):
    """Repository list with live star counts."""
    
    TITLE = "Starboard"
    SUB_TITLE = "Live GitHub Stars"
    
    CSS = """
    Screen {
        layout: vertical;
    }
    
    #live-status {
        height: 1;
        background: $surface;
        color: $text-muted;
        padding: 0 1;
    }
    
    #repositories-table {
        height: 1fr;
    }
    """
    
    BINDINGS = [
        Binding("q", "quit", "Quit"),
        Binding("r", "refresh", "Refresh"),
        Binding("?", "help", "Help"),
    ]
    
    def __init__(
        self,
        organisation: Optional[str] = None,
        fetcher: Optional[RepositoryFetcher] = None,
        push_source: Optional[PushSource] = None,
        config: Optional[StarboardConfig] = None,
    ):
        super().__init__()
        self._config = config or StarboardConfig.load()
        self.theme = self._config.theme
        self.organisation = organisation or self._config.organisation
        
        # Collaborators built here are closed on unmount
        self._owned_client: Optional[GitHubClient] = None
        self._owned_server: Optional[MockLiveServer] = None
        if fetcher is None:
            fetcher = self._owned_client = GitHubClient(token=os.environ.get("GITHUB_TOKEN"))
        if push_source is None:
            push_source = self._owned_server = MockLiveServer(
                min_interval=self._config.live_min_interval,
                max_interval=self._config.live_max_interval,
                max_increment=self._config.live_max_increment,
                ack_delay=self._config.subscribe_ack_delay,
            )
        
        self.fetcher = fetcher
        self.store = StarStore()
        self.subscriptions = SubscriptionManager(push_source, self.store)
        self.coordinator = RefreshCoordinator(
            self.organisation,
            fetcher,
            self.subscriptions,
            self.store,
            listener=self,
        )
    
    def compose(self) -> ComposeResult:
        yield Header()
        yield LiveStatusWidget(id="live-status")
        yield DataTable(id="repositories-table")
        yield Footer()
    
    def on_mount(self) -> None:
        self.sub_title = self.organisation
        self.query_one(LiveStatusWidget).organisation = self.organisation
        
        table = self.query_one("#repositories-table", DataTable)
        table.add_column("Name", key="name", width=30)
        table.add_column("Stars", key="stars", width=10)
        table.add_column("Description", key="description")
        table.cursor_type = "row"
        
        self.action_refresh()
    
    def on_unmount(self) -> None:
        self.coordinator.close()
        if self._owned_server is not None:
            self._owned_server.close()
        if self._owned_client is not None:
            self._owned_client.close()
    
    # Refresh
    
    def action_refresh(self) -> None:
        """Reload the repository list and reopen every live feed."""
        self.query_one("#repositories-table", DataTable).loading = True
        self.query_one(LiveStatusWidget).summary = "Refreshing..."
        self.refresh_repositories()
    
    @work(group="refresh")
    async def refresh_repositories(self) -> None:
        await self.coordinator.refresh()
    
    # DirectoryListener
    
    def on_directory_replaced(self) -> None:
        self._reload_table()
    
    def on_row_updated(self, repository_id: int) -> None:
        table = self.query_one("#repositories-table", DataTable)
        star_count = self.store.current_star_count(repository_id)
        try:
            table.update_cell(str(repository_id), "stars", format_stars(star_count))
        except CellDoesNotExist:
            self._reload_table()
    
    def on_refresh_finished(self) -> None:
        report = self.coordinator.last_report
        # Teardown may already have removed the widgets
        for table in self.query("#repositories-table").results(DataTable):
            if self.coordinator.in_flight == 0:
                table.loading = False
        for status in self.query(LiveStatusWidget):
            status.live_count = len(self.subscriptions)
            status.generation = self.subscriptions.generation
            status.summary = str(report) if report else ""
        
        if report is None:
            return
        if report.error:
            self.notify(f"Could not refresh: {report.error}", title="Refresh Failed", severity="error")
        elif report.failed:
            self.notify(
                f"{len(report.failed)} repositories have no live updates",
                severity="warning",
            )
    
    def _reload_table(self) -> None:
        table = self.query_one("#repositories-table", DataTable)
        table.clear()
        for repo, star_count in self.store.rows():
            table.add_row(
                repo.name,
                format_stars(star_count),
                repo.description or "",
                key=str(repo.id),
            )
    
    # Navigation
    
    @on(DataTable.RowSelected, "#repositories-table")
    def on_repository_selected(self, event: DataTable.RowSelected) -> None:
        repository_id = int(event.row_key.value)
        repository = self.store.directory.get(repository_id)
        if repository is None:
            return
        self.push_screen(
            RepositoryDetailScreen(
                repository,
                self.fetcher,
                star_count=lambda: self.store.current_star_count(repository_id),
            )
        )
    
    def action_help(self) -> None:
        """Show help information."""
        self.push_screen(HelpScreen())
