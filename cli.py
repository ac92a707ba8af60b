"""CLI entry point for esi-search-proxy."""

import asyncio
import sys
from datetime import datetime

from rich.console import Console

from app import create_app
from auth import check_auth
from core.config import config_path, load_config
from core.exceptions import ConfigurationError
from ui.dashboard import Dashboard
from ui.log_utils import clear_logs, write_cli_log

console = Console()


def main():
    """Main CLI entry point."""
    # Handle CLI arguments
    if len(sys.argv) > 1:
        arg = sys.argv[1]

        if arg == "--config":
            console.print(f"[bold]Config:[/bold] {config_path()}")
            return

        if arg in ("--help", "-h"):
            _print_help()
            return

    try:
        config = load_config()
    except ConfigurationError as e:
        console.print(f"[red][ERROR][/red] {e}")
        sys.exit(1)

    if len(sys.argv) > 1 and sys.argv[1] in ("--check", "--auth"):
        ok = asyncio.run(check_auth(config))
        sys.exit(0 if ok else 1)

    # Clear previous logs and start dashboard
    clear_logs()
    dashboard = Dashboard(config)

    import uvicorn

    app = create_app(config, dashboard)

    # Run with dashboard
    uvicorn_config = uvicorn.Config(
        app,
        host=config.proxy.host,
        port=config.proxy.port,
        log_level="warning",
        timeout_keep_alive=config.limits.keep_alive_timeout,
    )
    server = uvicorn.Server(uvicorn_config)

    dashboard.start()
    start_time = datetime.now()
    write_cli_log("STARTUP", "Proxy started", port=config.proxy.port, upstream=config.esi.base_url)
    try:
        server.run()
    finally:
        duration = datetime.now() - start_time
        write_cli_log("SHUTDOWN", "Proxy stopped", duration=str(duration))
        dashboard.stop()


def _print_help():
    """Print help message."""
    help_text = """
[bold cyan]ESI Search Proxy[/bold cyan]

Forwards requests to ESI. Search routes are answered by the configured
character's authenticated search; legacy online routes return a bare boolean.

[bold]Usage:[/bold]
    esi-search-proxy              Start with live dashboard
    esi-search-proxy --check      Run the SSO token exchange once
    esi-search-proxy --config     Show config location
    esi-search-proxy --help       Show this help

[bold]Configuration:[/bold]
    JSON file at ~/.config/esi-search-proxy/config.json, or the path in
    ESI_PROXY_CONFIG. All esi.* values are required.
"""
    console.print(help_text)


if __name__ == "__main__":
    main()
