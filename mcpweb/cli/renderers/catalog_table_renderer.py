from __future__ import annotations

import json

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table


def _schema_summary(schema) -> str:
    if not isinstance(schema, dict):
        return "-"
    properties = schema.get("properties")
    if not isinstance(properties, dict) or not properties:
        return "-"
    required = set(schema.get("required") or [])
    return ", ".join(
        f"{name}*" if name in required else name
        for name in properties
    )


class CatalogTableRenderer:
    def __init__(self, console: Console):
        self._console = console

    def render_tools(self, tools):
        table = Table(
            title=f"[bold]Tools ({len(tools)})[/bold]",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Name", style="green")
        table.add_column("Description", style="white", max_width=50)
        table.add_column("Arguments", style="dim")

        for tool in tools:
            if not isinstance(tool, dict):
                continue
            table.add_row(
                escape(str(tool.get("name", "?"))),
                escape(tool.get("description") or "-"),
                escape(_schema_summary(tool.get("inputSchema"))),
            )

        self._console.print()
        self._console.print(table)

    def render_resources(self, resources):
        table = Table(
            title=f"[bold]Resources ({len(resources)})[/bold]",
            box=box.ROUNDED,
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("URI", style="green")
        table.add_column("Name", style="white")
        table.add_column("MIME type", style="dim")

        for resource in resources:
            if not isinstance(resource, dict):
                continue
            table.add_row(
                escape(str(resource.get("uri", "?"))),
                escape(str(resource.get("name") or "-")),
                escape(str(resource.get("mimeType") or "-")),
            )

        self._console.print()
        self._console.print(table)

    def render_call_result(self, tool_name: str, response: dict):
        if "error" in response:
            body = escape(json.dumps(response["error"], indent=2))
            self._console.print()
            self._console.print(
                Panel(body, title=f"[red]{escape(tool_name)} failed[/red]", border_style="red")
            )
            return

        result = response.get("result") or {}
        blocks = []
        for content in result.get("content") or []:
            if isinstance(content, dict) and content.get("type") == "text":
                blocks.append(escape(str(content.get("text", ""))))
            else:
                blocks.append(escape(json.dumps(content, indent=2)))

        style = "red" if result.get("isError") else "green"
        self._console.print()
        self._console.print(
            Panel(
                "\n".join(blocks) or "[dim](no content)[/dim]",
                title=f"[{style}]{escape(tool_name)}[/{style}]",
                border_style=style,
            )
        )
