"""
Command-line scripts.

Scripts:
    backtest: Point-in-time backtest over frozen CSV/Parquet inputs

Usage:
    python -m spread_edge.scripts.backtest --games games.csv --lines lines.csv \\
        --ratings ratings.csv --seasons 2023 --min-edge 1.0
"""
