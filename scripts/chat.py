#!/usr/bin/env python3
"""
=============================================================================
Flight Agent Gateway - Interactive CLI
=============================================================================

An interactive command-line client for the flight agent gateway. Type a
free-text flight request and the gateway's plan is rendered as a table of
steps, along with the model's reasoning and the cache status.

USAGE:
------
    python scripts/chat.py                    # Default server
    python scripts/chat.py --url http://...   # Custom server URL

COMMANDS:
---------
    /feedback <text>  - Refine the last query with feedback
    /health           - Check server health
    /help             - Show this help message
    /exit             - Exit the CLI

=============================================================================
"""

import argparse
import json
import time

import httpx
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.theme import Theme

custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "red bold",
        "success": "green",
        "step": "magenta",
    }
)
console = Console(theme=custom_theme)


class FlightCLI:
    """Interactive CLI for the flight agent gateway."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        self.base_url = base_url.rstrip("/")
        self.last_query: str | None = None
        self.client = httpx.Client(timeout=120.0)  # Long timeout for LLM

    def print_banner(self) -> None:
        banner = """
╔══════════════════════════════════════════════════════════════╗
║     ✈️  Flight Agent Gateway                                  ║
║     ─────────────────────────────────────────────────────    ║
║     Describe the trip you're looking for.                    ║
║     Use /help for available commands.                        ║
╚══════════════════════════════════════════════════════════════╝
        """
        console.print(banner, style="bold cyan")
        console.print(f"Server:  [dim]{self.base_url}[/dim]\n")

    def print_help(self) -> None:
        table = Table(title="Available Commands", show_header=True)
        table.add_column("Command", style="cyan")
        table.add_column("Description")
        table.add_row("/feedback <text>", "Refine the last query with feedback")
        table.add_row("/health", "Check server health")
        table.add_row("/help", "Show this help message")
        table.add_row("/exit, /quit", "Exit the CLI")
        console.print(table)

    def check_health(self) -> bool:
        try:
            response = self.client.get(f"{self.base_url}/api/health")
        except httpx.HTTPError as e:
            console.print(f"❌ Cannot connect to server: {e}", style="error")
            return False

        if response.status_code != 200:
            console.print(f"❌ Server returned {response.status_code}", style="error")
            return False

        data = response.json()
        console.print(
            f"✅ Server healthy (v{data.get('version', '?')}, "
            f"cache={data.get('cache_size', 0)}, clients={data.get('rate_limits', 0)})",
            style="success",
        )
        return True

    def ask(self, query: str, context: dict | None = None) -> dict | None:
        """POST one request to /api/agent and render the result."""
        payload: dict = {"query": query}
        if context:
            payload["context"] = context

        start = time.perf_counter()
        try:
            response = self.client.post(f"{self.base_url}/api/agent", json=payload)
        except httpx.TimeoutException:
            console.print("❌ Request timed out (120s limit)", style="error")
            return None
        except httpx.HTTPError as e:
            console.print(f"❌ Error: {e}", style="error")
            return None
        elapsed = time.perf_counter() - start

        data = response.json()
        if response.status_code != 200:
            message = data.get("error", response.text)
            if response.status_code == 429:
                message += f" (retry after {response.headers.get('Retry-After', '?')}s)"
            console.print(f"❌ {response.status_code}: {message}", style="error")
            return None

        self.display_response(data, response.headers.get("X-Cache", "?"), elapsed)
        return data

    def display_response(self, data: dict, cache_status: str, elapsed: float) -> None:
        if data.get("thinking"):
            console.print(Panel(data["thinking"], title="Thinking", border_style="dim"))

        plan = data.get("plan")
        if plan and plan.get("steps"):
            table = Table(title="Plan", show_header=True)
            table.add_column("#", style="dim")
            table.add_column("Action", style="step")
            table.add_column("Parameters")
            for i, step in enumerate(plan["steps"], 1):
                table.add_row(
                    str(i),
                    step.get("action", "?"),
                    json.dumps(step.get("parameters", {}), indent=1),
                )
            console.print(table)
        elif data.get("summary") is None:
            console.print("No plan in reply.", style="warning")

        if data.get("summary"):
            console.print(Panel(data["summary"], title="Summary", border_style="green"))

        console.print(f"[dim]X-Cache: {cache_status} | {elapsed:.2f}s[/dim]")

    def run(self) -> None:
        """Main REPL loop."""
        self.print_banner()

        if not self.check_health():
            console.print("\n[warning]⚠️  Server not responding. Start it with:[/warning]")
            console.print("[dim]   uvicorn agent_gateway.main:app --port 8000[/dim]\n")

        while True:
            try:
                user_input = console.input("\n[bold cyan]You>[/bold cyan] ").strip()
                if not user_input:
                    continue

                if user_input.startswith("/"):
                    cmd, _, arg = user_input.partition(" ")
                    cmd = cmd.lower()

                    if cmd in ("/exit", "/quit", "/q"):
                        console.print("👋 Goodbye!", style="info")
                        break
                    elif cmd == "/help":
                        self.print_help()
                    elif cmd == "/health":
                        self.check_health()
                    elif cmd == "/feedback":
                        if self.last_query is None:
                            console.print("No query sent yet.", style="warning")
                        elif not arg.strip():
                            console.print("Usage: /feedback <text>", style="warning")
                        else:
                            self.ask(self.last_query, {"userFeedback": arg.strip()})
                    else:
                        console.print(
                            f"Unknown command: {cmd}. Use /help for available commands.",
                            style="warning",
                        )
                    continue

                self.last_query = user_input
                self.ask(user_input)

            except KeyboardInterrupt:
                console.print("\n👋 Goodbye!", style="info")
                break
            except EOFError:
                break

        self.client.close()


def main():
    parser = argparse.ArgumentParser(
        description="Interactive CLI for the flight agent gateway",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/chat.py
  python scripts/chat.py --url http://192.168.1.100:8000
        """,
    )
    parser.add_argument(
        "--url",
        default="http://localhost:8000",
        help="Base URL of the API server (default: http://localhost:8000)",
    )

    args = parser.parse_args()

    cli = FlightCLI(base_url=args.url)
    cli.run()


if __name__ == "__main__":
    main()
