"""Rich-powered console output for ctxengine."""

from __future__ import annotations

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.syntax import Syntax
from rich.table import Table

from ctxengine import __version__
from ctxengine.changes.models import ChangeSet
from ctxengine.context.models import ContextPackage, PreflightEstimate
from ctxengine.search.classifier import IntentClassification, ResponseModeRecommendation


class Console:
    """Terminal output for ctxengine using Rich."""

    def __init__(self, console: RichConsole | None = None) -> None:
        self.console = console or RichConsole()

    def banner(self) -> None:
        self.console.print(
            Panel(
                f"[bold cyan]ctxengine[/bold cyan] [dim]v{__version__}[/dim]\n"
                "[dim]Token-budgeted context for code generation[/dim]",
                border_style="cyan",
                padding=(1, 2),
            )
        )

    def success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def error(self, message: str) -> None:
        self.console.print(f"[red]✗[/red] {message}")

    def warning(self, message: str) -> None:
        self.console.print(f"[yellow]![/yellow] {message}")

    def info(self, message: str) -> None:
        self.console.print(f"[blue]i[/blue] {message}")

    def code(self, text: str, language: str = "tsx") -> None:
        """Render syntax-highlighted code."""
        self.console.print(Syntax(text, language, theme="monokai", line_numbers=True))

    def scan_progress(self) -> Progress:
        return Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("[progress.percentage]{task.percentage:>3.0f}%"),
            TimeElapsedColumn(),
            console=self.console,
        )

    def show_changes(self, changes: ChangeSet, title: str = "Changes") -> None:
        table = Table(title=title, border_style="cyan")
        table.add_column("Status", style="bold")
        table.add_column("Count", justify="right", style="cyan")
        table.add_row("Created", str(len(changes.created)))
        table.add_row("Modified", str(len(changes.modified)))
        table.add_row("Deleted", str(len(changes.deleted)))
        table.add_row("Unchanged", str(len(changes.unchanged)))
        self.console.print(table)

        for label, paths, color in (
            ("+", changes.created, "green"),
            ("~", changes.modified, "yellow"),
            ("-", changes.deleted, "red"),
        ):
            for path in paths:
                self.console.print(f"  [{color}]{label}[/{color}] {path}")

    def show_classification(
        self, intent: IntentClassification, mode: ResponseModeRecommendation
    ) -> None:
        flags = [
            name
            for name, on in (
                ("trivial", intent.is_trivial_change),
                ("visual", intent.is_visual_change),
                ("structural", intent.is_structural_change),
            )
            if on
        ]
        self.console.print(
            Panel(
                f"[bold]Action:[/bold] {intent.action.value} "
                f"[dim](confidence {intent.confidence:.2f})[/dim]\n"
                f"[bold]Flags:[/bold] {', '.join(flags) or 'none'}\n"
                f"[bold]Files:[/bold] {', '.join(intent.target_files) or '-'}\n"
                f"[bold]Keywords:[/bold] {', '.join(intent.keywords) or '-'}\n"
                f"[bold]Response:[/bold] {mode.mode.value} [dim]({mode.reason})[/dim]",
                title="[bold]Intent[/bold]",
                border_style="blue",
            )
        )

    def show_package(self, package: ContextPackage) -> None:
        """Summary panel plus a table of the included files."""
        pct = package.budget_used_pct
        color = "green" if pct <= 80 else "yellow" if pct <= 100 else "red"
        body = (
            f"[bold]Mode:[/bold] {package.context_mode.value}\n"
            f"[bold]Tokens:[/bold] [{color}]{package.estimated_tokens:,} / "
            f"{package.token_budget:,} ({pct:.0f}%)[/{color}]"
        )
        c = package.classification
        if c:
            body += f"\n[bold]Intent:[/bold] {c.intent} [dim](confidence {c.confidence:.2f})[/dim]"
            if c.used_semantic_search:
                body += "\n[bold]Semantic search:[/bold] yes"
            if c.degraded:
                body += f"\n[bold]Degraded:[/bold] [yellow]{', '.join(c.degraded)}[/yellow]"
        self.console.print(Panel(body, title="[bold]Context Package[/bold]", border_style=color))

        table = Table(border_style="cyan")
        table.add_column("File", style="cyan")
        table.add_column("Score", justify="right")
        table.add_column("Tokens", justify="right")
        table.add_column("Reason", style="dim")
        for f in package.relevant_files:
            path = f"{f.path} [dim](outline)[/dim]" if f.is_outline else f.path
            table.add_row(path, f"{f.relevance_score:.2f}", str(f.token_estimate), f.relevance_reason)
        self.console.print(table)

    def show_preflight(self, estimate: PreflightEstimate) -> None:
        table = Table(title="Preflight Estimate", border_style="cyan")
        table.add_column("Section", style="bold")
        table.add_column("Tokens", justify="right", style="cyan")
        for name, tokens in estimate.breakdown.model_dump().items():
            table.add_row(name, f"{tokens:,}")
        table.add_section()
        table.add_row("total", f"{estimate.estimated_tokens:,}")
        table.add_row("budget", f"{estimate.token_budget:,}")
        self.console.print(table)

        if estimate.within_budget:
            self.success(f"Within budget ({estimate.intent}, {estimate.files_to_include} files)")
        else:
            self.warning(
                f"Over budget; recommended mode: {estimate.recommended_mode.value}"
            )
