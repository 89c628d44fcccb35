"""
Rich-based terminal rendering for backtest reports and edges.

Provides static views with:
- Summary panel with record, ROI and CLV
- Calibration table by edge bucket
- Market and provider breakdowns
- Skipped tally and current edges
"""

from typing import Iterable, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from spread_edge.analysis.backtest_runner import BacktestResult
from spread_edge.database.schemas import Edge


def _signed_style(value: float) -> str:
    if value > 0:
        return "green"
    if value < 0:
        return "red"
    return "white"


class TerminalReport:
    """
    Renders engine output to the terminal.

    Example:
        >>> report = TerminalReport()
        >>> report.show_backtest(result)
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def show_backtest(self, result: BacktestResult, max_picks: int = 0) -> None:
        """Print the full backtest report."""
        self.console.print(self._render_summary(result))
        self.console.print(self._render_buckets(result))
        self.console.print(self._render_breakdown("By Market", result.by_market))
        self.console.print(self._render_breakdown("By Provider", result.by_provider))
        if result.skipped:
            self.console.print(self._render_skipped(result.skipped))
        if max_picks > 0:
            self.console.print(self._render_picks(result, max_picks))

    def show_edges(self, edges: Iterable[Edge]) -> None:
        self.console.print(self._render_edges(list(edges)))

    def _render_summary(self, result: BacktestResult) -> Panel:
        """Render the summary panel."""
        o = result.overall
        config = result.config
        roi_style = _signed_style(o.roi)

        parts = [
            f"[bold white]Decision[/bold white] {config.decision_label.value}  "
            f"[dim]|[/dim]  [bold white]Min edge[/bold white] {config.edge_threshold:g}",
            f"Games {result.games_evaluated}  [dim]|[/dim]  Edges {result.edges_evaluated}  "
            f"[dim]|[/dim]  Bets {result.total_bets}  [dim]|[/dim]  Skipped {result.total_skipped}",
            f"Record [bold]{o.wins}-{o.losses}-{o.pushes}[/bold]  "
            f"[dim]|[/dim]  Win rate {o.win_rate:.1%} "
            f"[dim](break-even {result.calibration.break_even:.1%})[/dim]",
            f"Profit [{roi_style}]{o.profit:+.2f}u[/{roi_style}]  "
            f"[dim]|[/dim]  ROI [{roi_style}]{o.roi:+.1%}[/{roi_style}]  "
            f"[dim]|[/dim]  Avg edge {result.avg_edge:.2f}",
            result.clv.summary(),
        ]
        return Panel(
            Text.from_markup("\n".join(parts)),
            title="Backtest",
            border_style="blue",
        )

    def _render_buckets(self, result: BacktestResult) -> Panel:
        """Render the calibration table."""
        table = Table(
            title="Win Rate by Edge",
            show_header=True,
            header_style="bold cyan",
            border_style="dim",
            expand=True,
        )

        table.add_column("Edge", style="white", no_wrap=True)
        table.add_column("Bets", justify="right")
        table.add_column("W-L-P", justify="center")
        table.add_column("Win Rate", justify="right")
        table.add_column("ROI", justify="right")
        table.add_column("p-value", justify="right")
        table.add_column("95% CI", justify="right", style="dim")

        buckets = [b for b in result.calibration.buckets if b.count > 0]
        if not buckets:
            table.add_row("[dim]No qualifying bets[/dim]", "", "", "", "", "", "")
        for b in buckets:
            style = _signed_style(b.roi)
            table.add_row(
                b.label,
                str(b.count),
                f"{b.wins}-{b.losses}-{b.pushes}",
                f"{b.win_rate:.1%}",
                f"[{style}]{b.roi:+.1%}[/{style}]",
                f"{b.p_value:.3f}" if b.p_value is not None else "-",
                f"{b.ci_lower:.1%}-{b.ci_upper:.1%}" if b.ci_lower is not None else "-",
            )

        return Panel(table, border_style="green")

    def _render_breakdown(self, title: str, groups: dict[str, dict]) -> Table:
        table = Table(title=title, header_style="bold cyan", border_style="dim")
        table.add_column("Group", style="white")
        table.add_column("Bets", justify="right")
        table.add_column("W-L-P", justify="center")
        table.add_column("Win Rate", justify="right")
        table.add_column("ROI", justify="right")

        for name, stats in groups.items():
            style = _signed_style(stats["roi"])
            table.add_row(
                name,
                str(stats["count"]),
                f"{stats['wins']}-{stats['losses']}-{stats['pushes']}",
                f"{stats['win_rate']:.1%}",
                f"[{style}]{stats['roi']:+.1%}[/{style}]",
            )
        return table

    def _render_skipped(self, skipped: dict[str, int]) -> Table:
        table = Table(title="Skipped", header_style="dim", border_style="dim")
        table.add_column("Reason", style="white")
        table.add_column("Count", justify="right")
        for reason, count in sorted(skipped.items()):
            table.add_row(reason, str(count))
        return table

    def _render_picks(self, result: BacktestResult, max_picks: int) -> Table:
        table = Table(title="Picks", header_style="bold cyan", border_style="dim")
        table.add_column("Kickoff", style="dim", no_wrap=True)
        table.add_column("Game", style="white", no_wrap=True)
        table.add_column("Book", style="dim")
        table.add_column("Bet")
        table.add_column("Edge", justify="right")
        table.add_column("Result", justify="center")
        table.add_column("CLV", justify="right")

        for pick in result.picks[:max_picks]:
            outcome_style = {"win": "green", "loss": "red"}.get(pick.outcome.value, "yellow")
            line = f"{pick.line:+.1f}" if pick.market.value == "spread" else f"{pick.line:.1f}"
            table.add_row(
                pick.start_time.strftime("%Y-%m-%d %H:%M"),
                pick.matchup,
                pick.provider,
                f"{pick.side.value} {line}",
                f"{pick.edge_points:+.1f}",
                f"[{outcome_style}]{pick.outcome.value}[/{outcome_style}]",
                f"{pick.clv_points:+.1f}" if pick.clv_points is not None else "-",
            )
        return table

    def _render_edges(self, edges: list[Edge]) -> Panel:
        table = Table(
            title="Edges",
            header_style="bold cyan",
            border_style="dim",
            expand=True,
        )
        table.add_column("Game", style="white", no_wrap=True)
        table.add_column("Market")
        table.add_column("Book", style="dim")
        table.add_column("Model", justify="right")
        table.add_column("Market", justify="right")
        table.add_column("Edge", justify="right")
        table.add_column("Side", justify="center")
        table.add_column("Reason", style="dim")

        if not edges:
            table.add_row("[dim]No edges[/dim]", "", "", "", "", "", "", "")
        for edge in edges:
            style = "green" if edge.qualifies else "dim"
            table.add_row(
                edge.game_id,
                edge.market.value,
                edge.provider,
                f"{edge.model_line:.1f}" if edge.model_line is not None else "-",
                f"{edge.market_line:.1f}" if edge.market_line is not None else "-",
                f"{edge.edge_points:+.1f}" if edge.edge_points is not None else "-",
                edge.recommended_side.value if edge.recommended_side else "-",
                f"[{style}]{edge.qualification_reason}[/{style}]",
            )
        return Panel(table, border_style="green")
