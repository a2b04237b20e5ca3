"""Command-line interface for cml-assess.

Provides commands for computing performance measures from a prediction
bundle and comparing descriptor set / method combinations across splits.
"""

from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.table import Table

from cml_assess.errors import AssessmentError

if TYPE_CHECKING:
    from cml_assess.data import TrainResult

app = typer.Typer(
    name="cml-assess",
    help="Split ANOVA and multiple comparisons of model performance",
    add_completion=False,
)
console = Console()
err_console = Console(stderr=True)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def _load_bundle(bundle: Path) -> TrainResult:
    from cml_assess.data import TrainResult

    if not bundle.exists():
        err_console.print(f"[red]Prediction bundle not found: {bundle}[/red]")
        raise typer.Exit(1)

    try:
        return TrainResult.load(bundle)
    except (KeyError, ValueError) as e:
        err_console.print(f"[red]Invalid prediction bundle {bundle}: {e}[/red]")
        raise typer.Exit(1) from e


def _fmt(value: float) -> str:
    return "NA" if math.isnan(value) else f"{value:.4f}"


@app.command()
def version() -> None:
    """Show version information."""
    from cml_assess import __version__

    console.print(f"cml-assess v{__version__}")


@app.command()
def performance(
    bundle: Annotated[
        Path,
        typer.Argument(help="Prediction bundle JSON"),
    ],
    metrics: Annotated[
        list[str] | None,
        typer.Option("--metric", "-M", help="Performance measure (repeatable)"),
    ] = None,
    m: Annotated[
        int | None,
        typer.Option("--m", help="Number of tests (default: auto)"),
    ] = None,
    thresh: Annotated[
        float,
        typer.Option("--thresh", help="Probability threshold for class 1"),
    ] = 0.5,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Output CSV file for the metric table"),
    ] = None,
) -> None:
    """Compute performance measures for each split and D-M combination."""
    from cml_assess.evaluation import performance as compute_performance

    result = _load_bundle(bundle)
    metric_names = metrics or ["enhancement"]

    try:
        table = compute_performance(result, metric_names, m=m, thresh=thresh)
    except (AssessmentError, ValueError) as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    rich_table = Table(title="Performance")
    for column in ("Split", "Descriptor", "Method"):
        rich_table.add_column(column, style="cyan")
    for metric in table.columns[3:]:
        rich_table.add_column(str(metric), style="green", justify="right")

    for row in table.itertuples(index=False):
        split, desc, method, *values = row
        rich_table.add_row(str(split), str(desc), str(method), *(_fmt(v) for v in values))

    console.print(rich_table)

    if output:
        output.parent.mkdir(parents=True, exist_ok=True)
        table.to_csv(output, index=False)
        console.print(f"\nMetric table saved to {output}")


@app.command()
def compare(
    bundle: Annotated[
        Path,
        typer.Argument(help="Prediction bundle JSON"),
    ],
    metric: Annotated[
        str,
        typer.Option("--metric", "-M", help="Performance measure"),
    ] = "enhancement",
    m: Annotated[
        int | None,
        typer.Option("--m", help="Number of tests (default: auto)"),
    ] = None,
    thresh: Annotated[
        float,
        typer.Option("--thresh", help="Probability threshold for class 1"),
    ] = 0.5,
    mcs_output: Annotated[
        Path | None,
        typer.Option("--mcs-output", help="Output JSON for the MCS plot payload"),
    ] = None,
) -> None:
    """Run the split ANOVA and Tukey-Kramer comparisons.

    Prints the aggregate and nested ANOVA tables and the least-squares
    mean of every descriptor set / method combination.
    """
    from cml_assess.evaluation import combine_splits

    result = _load_bundle(bundle)

    try:
        outcome = combine_splits(result, metric=metric, m=m, thresh=thresh)
    except (AssessmentError, ValueError) as e:
        err_console.print(f"[red]{e}[/red]")
        raise typer.Exit(1) from e

    console.print(outcome.report(), highlight=False, markup=False)
    console.print()

    mcs = outcome.mcs
    table = Table(title=f"Least-squares means: {metric}")
    table.add_column("Trmt", style="cyan", justify="right")
    table.add_column("Treatment", style="cyan")
    table.add_column("LS Mean", style="green", justify="right")
    for code, label, lsmean in zip(mcs.codes, mcs.labels, mcs.lsmeans, strict=True):
        table.add_row(str(code), label, f"{lsmean:.4f}")
    console.print(table)

    if outcome.imputation.degenerate:
        console.print(
            f"[yellow]Treatments with no valid split (imputed 0): "
            f"{outcome.imputation.degenerate}[/yellow]"
        )

    significant = outcome.comparisons.significant_pairs()
    console.print(f"{len(significant)} of {len(outcome.comparisons.comparisons)} pairs differ at 0.05")

    if mcs_output:
        mcs_output.parent.mkdir(parents=True, exist_ok=True)
        mcs.save(mcs_output)
        console.print(f"MCS plot data saved to {mcs_output}")


if __name__ == "__main__":
    app()
