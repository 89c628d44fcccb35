"""
Terminal rendering for engine output.

Example:
    >>> from spread_edge.dashboard import TerminalReport
    >>> TerminalReport().show_backtest(result)
"""

from .terminal import TerminalReport

__all__ = [
    "TerminalReport",
]
