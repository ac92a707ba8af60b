"""Real-time CLI dashboard for proxy monitoring."""

from datetime import datetime
from threading import Lock

from rich.console import Console
from rich.layout import Layout
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.config import Config
from ui.log_utils import write_cli_log

console = Console()

KIND_STYLES = {"generic": "white", "search": "cyan", "online": "magenta"}


class RequestInfo:
    """Info about a single proxied request."""

    def __init__(self, method: str, route: str, kind: str, status: int, timestamp: datetime):
        self.method = method
        self.route = route[:60] + "..." if len(route) > 60 else route
        self.kind = kind
        self.status = status
        self.timestamp = timestamp


class Dashboard:
    """Real-time dashboard showing proxied requests by route kind."""

    def __init__(self, config: Config):
        self.config = config
        self._lock = Lock()
        self._recent: list[RequestInfo] = []
        self._max_recent = 10
        self._request_count = {kind: 0 for kind in KIND_STYLES}
        self._failures = 0
        self._errors: list[str] = []
        self._live: Live | None = None

    def start(self) -> "Dashboard":
        """Start the live dashboard."""
        self._live = Live(
            self._build_layout(),
            console=console,
            refresh_per_second=4,
            screen=False,
        )
        self._live.start()
        return self

    def stop(self) -> None:
        """Stop the live dashboard."""
        if self._live:
            self._live.stop()

    def log_request(self, method: str, route: str, kind: str, status: int) -> None:
        """Log a request that completed the pipeline."""
        with self._lock:
            self._request_count[kind] = self._request_count.get(kind, 0) + 1
            self._recent.insert(0, RequestInfo(method, route, kind, status, datetime.now()))
            self._recent = self._recent[: self._max_recent]
            self._refresh()
            write_cli_log("REQUEST", f"{method} /{route.lstrip('/')}", kind=kind, status=status)

    def log_error(self, method: str, route: str, stage: str, error: BaseException) -> None:
        """Log a request that failed and was answered with a 503."""
        with self._lock:
            self._failures += 1
            message = f"{type(error).__name__}: {error}"
            truncated = message[:60] + "..." if len(message) > 60 else message
            self._errors.insert(0, f"{method} /{route.lstrip('/')} [{stage}] {truncated}")
            self._errors = self._errors[:3]
            self._refresh()
            write_cli_log(
                "ERROR",
                message[:500],
                method=method,
                route=route,
                stage=stage,
                status=503,
            )

    def _refresh(self) -> None:
        """Refresh the display."""
        if self._live:
            self._live.update(self._build_layout())

    def _build_layout(self) -> Layout:
        """Build the dashboard layout."""
        layout = Layout()

        layout.split_column(
            Layout(name="header", size=3),
            Layout(name="body"),
            Layout(name="footer", size=5),
        )

        layout["header"].update(self._build_header())
        layout["body"].update(self._build_requests_panel())
        layout["footer"].update(self._build_footer())

        return layout

    def _build_header(self) -> Panel:
        """Build header with stats."""
        stats = Text()
        stats.append("ESI Search Proxy", style="bold cyan")
        for kind, style in KIND_STYLES.items():
            stats.append("  |  ")
            stats.append(f"{kind}: {self._request_count.get(kind, 0)}", style=style)
        stats.append("  |  ")
        stats.append(f"503s: {self._failures}", style="red")
        stats.append("  |  ")
        stats.append(f"Port: {self.config.proxy.port}", style="dim")

        return Panel(stats, style="cyan")

    def _build_requests_panel(self) -> Panel:
        """Build the recent requests panel."""
        if self._recent:
            table = Table(show_header=True, header_style="bold", expand=True, box=None)
            table.add_column("Time", style="dim", width=8)
            table.add_column("Method", width=7)
            table.add_column("Route", ratio=3)
            table.add_column("Kind", width=8)
            table.add_column("Status", width=6)

            for info in self._recent:
                status_style = "green" if info.status < 400 else "yellow"
                table.add_row(
                    info.timestamp.strftime("%H:%M:%S"),
                    info.method,
                    info.route,
                    Text(info.kind, style=KIND_STYLES.get(info.kind, "white")),
                    Text(str(info.status), style=status_style),
                )

            content = table
        else:
            content = Text("Waiting for requests...", style="dim")

        return Panel(content, title="[blue]Recent Requests[/blue]", border_style="blue")

    def _build_footer(self) -> Panel:
        """Build footer with errors and help."""
        if self._errors:
            error_text = Text()
            for err in self._errors:
                error_text.append("! ", style="red bold")
                error_text.append(err + "\n", style="red")
            content = error_text
        else:
            content = Text(
                f"Proxying {self.config.esi.base_url} on "
                f"http://{self.config.proxy.host}:{self.config.proxy.port}",
                style="dim",
            )

        return Panel(content, title="[dim]Status[/dim]", border_style="dim")
