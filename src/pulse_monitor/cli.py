"""
Command Line Interface for Pulse Monitor.

This module provides CLI commands for running the monitoring API server,
validating configuration and taking a one-off host resource snapshot.
"""

import sys
import time
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from pulse_monitor import __version__
from pulse_monitor.config.settings import get_settings, validate_required_settings
from pulse_monitor.core.exceptions import CollectionError, ConfigurationError
from pulse_monitor.core.logging import get_logger, setup_logging
from pulse_monitor.monitoring.collector import HostMetricsCollector
from pulse_monitor.monitoring.sample_store import SampleStore

app = typer.Typer(
    name="pulse-monitor",
    help="Runtime health monitoring and alerting CLI",
    add_completion=False,
)
console = Console()


def _format_bytes(value: int) -> str:
    return f"{value / (1024 ** 3):.2f} GB"


@app.command()
def version():
    """Show version information."""
    console.print(f"Pulse Monitor v{__version__}")


@app.command()
def validate_config():
    """Validate monitoring configuration."""
    try:
        settings = get_settings()
        validate_required_settings(settings)
    except Exception as e:
        console.print(f"❌ Configuration validation failed: {e}", style="red")
        sys.exit(1)

    console.print("✅ Configuration validation successful!", style="green")

    monitoring = settings.monitoring
    thresholds = settings.thresholds

    table = Table(title="Configuration Summary")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="magenta")

    table.add_row("Environment", settings.environment)
    table.add_row("Log Level", settings.log_level)
    table.add_row("Collection interval", f"{monitoring.collection_interval_seconds:g}s")
    table.add_row("Evaluation interval", f"{monitoring.evaluation_interval_seconds:g}s")
    table.add_row("Cleanup interval", f"{monitoring.cleanup_interval_seconds:g}s")
    table.add_row("Retention", f"{monitoring.retention_hours:g}h")
    table.add_row("CPU threshold", f"{thresholds.cpu_percent:g}%")
    table.add_row("Memory threshold", f"{thresholds.memory_percent:g}%")
    table.add_row("Response time threshold", f"{thresholds.response_time_ms:g}ms")
    table.add_row("Error rate threshold", f"{thresholds.error_rate_percent:g}%")
    table.add_row("Alert sink",
                  "Telegram" if settings.notifier.telegram_configured else "Log only")
    table.add_row("API token", "✅ Configured" if settings.security.api_token else "❌ Not set")

    console.print(table)


@app.command()
def snapshot(
    prime_seconds: float = typer.Option(1.0, help="CPU measurement window in seconds"),
):
    """Take one host resource sample and print it."""
    settings = get_settings()
    collector = HostMetricsCollector(SampleStore(), disk_path=settings.monitoring.disk_path)

    collector.prime()
    time.sleep(max(prime_seconds, 0.1))

    try:
        sample = collector.sample()
    except CollectionError as e:
        console.print(f"❌ Snapshot failed: {e}", style="red")
        sys.exit(1)

    table = Table(title="Host Snapshot")
    table.add_column("Resource", style="cyan")
    table.add_column("Usage", style="magenta")
    table.add_column("Detail")

    table.add_row("CPU", f"{sample.cpu_percent:.1f}%", "")
    table.add_row("Memory", f"{sample.memory_percent:.2f}%",
                  f"{_format_bytes(sample.memory_used)} / {_format_bytes(sample.memory_total)}")
    table.add_row("Disk", f"{sample.disk_percent:.2f}%",
                  f"{_format_bytes(sample.disk_used)} / {_format_bytes(sample.disk_total)}")

    console.print(table)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Host to bind to"),
    port: Optional[int] = typer.Option(None, help="Port to bind to"),
    reload: bool = typer.Option(False, help="Enable auto-reload"),
    log_file: Optional[Path] = typer.Option(None, help="Log file path"),
):
    """Start the monitoring API server."""
    settings = get_settings()
    try:
        validate_required_settings(settings)
    except ConfigurationError as e:
        console.print(f"❌ Configuration validation failed: {e}", style="red")
        sys.exit(1)

    setup_logging(settings.log_level, settings.environment, log_file or settings.log_file)
    logger = get_logger("api_server")

    host = host or settings.web.host
    port = port or settings.web.port

    try:
        import uvicorn

        logger.info("Starting API server", host=host, port=port)
        console.print(f"🚀 Starting monitoring API on {host}:{port}", style="blue")

        uvicorn.run(
            "pulse_monitor.api.main:create_app",
            factory=True,
            host=host,
            port=port,
            reload=reload or settings.web.reload,
        )
    except Exception as e:
        console.print(f"❌ Failed to start API server: {e}", style="red")
        sys.exit(1)


def main():
    """Main CLI entry point."""
    app()


if __name__ == "__main__":
    main()
