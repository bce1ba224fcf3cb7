"""
Table and CSV rendering of round statistics.
"""

import logging
import sys
from typing import List, Optional, TextIO, Union

import pandas as pd
from rich.console import Console
from rich.table import Table

from persistence.stats import Stats

logger = logging.getLogger(__name__)

HEADER: List[str] = [
    "Test", "Throughput", "Rate",
    "avg", "p25", "p50", "p75", "p90", "p99", "max",
]


def build_frame(stats_list: List[Stats]) -> pd.DataFrame:
    """Refresh every round and collect its row into a DataFrame."""
    rows = []
    for stats in stats_list:
        stats.refresh()
        rows.append(stats.get_data())
    return pd.DataFrame(rows, columns=HEADER)


def print_stats(stats_list: List[Stats], console: Optional[Console] = None) -> None:
    """Render all rounds seen so far as a table (stderr by default)."""
    if console is None:
        console = Console(stderr=True)

    frame = build_frame(stats_list)
    table = Table(show_header=True, header_style="bold")
    for column in HEADER:
        table.add_column(column, justify="left" if column == "Test" else "right")
    for row in frame.itertuples(index=False):
        table.add_row(*row)
    console.print(table)


def write_csv(stats_list: List[Stats], destination: Union[str, TextIO]) -> None:
    """Write all rounds as CSV to a path, or to stdout when given "-"."""
    frame = build_frame(stats_list)
    if destination == "-":
        destination = sys.stdout
    frame.to_csv(destination, index=False)
    if isinstance(destination, str):
        logger.info(f"Statistics written to {destination}")
