"""
Rich console output, statistics log and history files.
"""

import datetime
import os
from typing import Optional

import numpy as np
from rich.console import Console
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table

console = Console(
    force_terminal=True,
    no_color=False,
    log_path=False,
    width=191,
    color_system="truecolor",
    legacy_windows=False,
)

STATS_HEADER = (
    "# Iterations\tAccumulated_function_evaluations\tMin_cost_refset\t"
    "Average_cost_refset\tVar_cost_refset\tReplacement_in_reference_set\t"
    "Local_searches\tFlatzones\tDuplicates\tCandidate_set_size"
)


def log_message(message, emoji=None, timestamp=True):
    """
    Print a timestamped message with Rich.
    """
    timestamp_str = datetime.datetime.now().strftime('%Y-%m-%d %H:%M:%S') if timestamp else ""
    emoji_str = f" {emoji}" if emoji else ""
    console.print(f"{timestamp_str}{emoji_str} {message}")


def print_banner(title: str):
    console.print(Rule(f"[bold cyan]{title}[/bold cyan]"))


def print_iteration_stats(state, ref_set):
    """Panel with the Reference Set costs and the counters since the last report."""
    mean, variance = ref_set.cost_statistics()
    table = Table(show_header=True, header_style="bold magenta", box=None)
    for column in ("Iter", "Evals", "Best", "Mean", "Var", "Replaced",
                   "Local searches", "Flatzones", "Duplicates", "Candidates"):
        table.add_column(column, justify="right")
    table.add_row(
        str(state.n_iter),
        str(state.n_function_evals),
        f"{ref_set.best.cost:.6e}",
        f"{mean:.6e}",
        f"{variance:.6e}",
        str(state.since_last_report("n_ref_set_update")),
        str(state.since_last_report("n_refinement")),
        str(state.since_last_report("n_flatzone_detected")),
        str(state.since_last_report("n_duplicates")),
        str(state.candidates_size),
    )
    console.print(Panel(table, title="Scatter Search", border_style="cyan"))


def print_summary(result):
    """Final summary: status, counters and the best parameters."""
    state = result.state
    names = result.parameter_names or [f"x{i}" for i in range(result.best.n_dimensions)]
    lines = [
        f"[bold]Status:[/bold] {result.status.value} ({result.exit_reason})",
        f"[bold]Iterations:[/bold] {state.n_iter}",
        f"[bold]Function evaluations:[/bold] {state.n_function_evals}",
        f"[bold]Best cost:[/bold] {result.best.cost:.6e}",
        f"[bold]Reference set updates:[/bold] {state.n_ref_set_update}",
        f"[bold]Duplicates:[/bold] {state.n_duplicates} ({state.n_duplicate_replaced} replaced)",
        f"[bold]Flatzones:[/bold] {state.n_flatzone_detected}",
        f"[bold]Local searches:[/bold] {state.n_refinement}",
        f"[bold]Regenerations:[/bold] {state.n_regen}",
        f"[bold]Elapsed:[/bold] {result.elapsed_s:.2f}s",
        "",
    ]
    lines.extend(f"  {name}: {value:.6f}" for name, value in zip(names, result.best.params))
    console.print(
        Panel("\n".join(lines), title="🏁 Scatter Search finished", border_style="green"),
    )


def print_reference_set(ref_set):
    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("#", justify="right")
    table.add_column("Cost", justify="right")
    table.add_column("Parameters")
    for index, member in enumerate(ref_set):
        params = ", ".join(f"{value:.6f}" for value in member.params)
        table.add_row(str(index), f"{member.cost:.6e}", params)
    console.print(table)


class StatsWriter:
    """
    Tab separated statistics log plus optional per-iteration history files.

    The statistics log gets its closing `#eof` line from `close()`.
    """

    def __init__(self, stats_path: Optional[str] = None, history_path: Optional[str] = None,
                 track_frequencies: bool = False):
        self.stats_path = stats_path
        self.history_path = history_path
        self.track_frequencies = track_frequencies
        self._stats = None
        self._ref_history = None
        self._best_history = None
        self._freqs_history = None

    @staticmethod
    def _open(path):
        directory = os.path.dirname(os.path.abspath(path))
        os.makedirs(directory, exist_ok=True)
        return open(path, "w")

    def open(self):
        if self.stats_path:
            self._stats = self._open(self.stats_path)
            self._stats.write(STATS_HEADER + "\n")
        if self.history_path:
            self._ref_history = self._open(f"{self.history_path}_ref_history")
            self._best_history = self._open(f"{self.history_path}_best_history")
            if self.track_frequencies:
                self._freqs_history = self._open(f"{self.history_path}_freqs_history")

    def write_stats(self, state, ref_set):
        if self._stats is None:
            return
        mean, variance = ref_set.cost_statistics()
        fields = [
            state.n_iter,
            state.n_function_evals,
            f"{ref_set.best.cost:.17g}",
            f"{mean:.17g}",
            f"{variance:.17g}",
            state.since_last_report("n_ref_set_update"),
            state.since_last_report("n_refinement"),
            state.since_last_report("n_flatzone_detected"),
            state.since_last_report("n_duplicates"),
            state.candidates_size,
        ]
        self._stats.write("\t".join(str(value) for value in fields) + "\n")
        self._stats.flush()

    def write_history(self, state, ref_set, grid=None):
        if self._ref_history is None:
            return
        rows = np.column_stack([ref_set.params_matrix(), ref_set.costs()])
        for row in rows:
            self._ref_history.write(f"{state.n_iter}\t" + "\t".join(f"{v:.17g}" for v in row) + "\n")
        best = rows[0]
        self._best_history.write(f"{state.n_iter}\t" + "\t".join(f"{v:.17g}" for v in best) + "\n")
        if self._freqs_history is not None and grid is not None:
            for row in grid.freqs:
                self._freqs_history.write(f"{state.n_iter}\t" + "\t".join(str(v) for v in row) + "\n")

    def close(self):
        if self._stats is not None:
            self._stats.write("#eof\n")
        for handle in (self._stats, self._ref_history, self._best_history, self._freqs_history):
            if handle is not None:
                handle.close()
        self._stats = self._ref_history = self._best_history = self._freqs_history = None
