"""Main CLI application for traitml."""

import typer
from pathlib import Path
from typing import Optional
from enum import Enum

app = typer.Typer(
    name="traitml",
    help="Likelihood of discrete character evolution on phylogenies",
    no_args_is_help=True,
)


class OutputFormat(str, Enum):
    """Output format."""
    TEXT = "text"
    JSON = "json"


class RootPriorChoice(str, Enum):
    """Named root prior policy."""
    UNIFORM = "uniform"
    STATIONARY = "stationary"
    FITZJOHN = "fitzjohn"


class MkModel(str, Enum):
    """Mk rate matrix parameterization."""
    ER = "ER"
    SYM = "SYM"
    ARD = "ARD"


@app.command()
def loglik(
    tree: Path = typer.Option(
        ...,
        "--tree", "-t",
        help="Phylogenetic tree file (Newick format)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    data: Path = typer.Option(
        ...,
        "--data", "-d",
        help="Trait table (CSV, or TSV for .tsv/.txt)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    alpha: Optional[float] = typer.Option(
        None,
        "--alpha",
        help="Gain rate (0 -> 1) of the two-state model",
        min=0.0,
    ),
    beta: Optional[float] = typer.Option(
        None,
        "--beta",
        help="Loss rate (1 -> 0) of the two-state model",
        min=0.0,
    ),
    rates: Optional[str] = typer.Option(
        None,
        "--rates", "-r",
        help="Comma-separated free rates of the Mk model",
    ),
    model: MkModel = typer.Option(
        MkModel.ARD,
        "--model", "-m",
        help="Mk parameterization used with --rates",
        case_sensitive=False,
    ),
    root_prior: RootPriorChoice = typer.Option(
        RootPriorChoice.UNIFORM,
        "--root-prior",
        help="Root state prior",
    ),
    taxon_column: Optional[str] = typer.Option(
        None,
        "--taxon-column",
        help="Column with taxon names (default: first column)",
    ),
    trait_column: Optional[str] = typer.Option(
        None,
        "--trait-column",
        help="Column with observed states (default: second column)",
    ),
    states: Optional[str] = typer.Option(
        None,
        "--states",
        help="Comma-separated state labels in model order",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help="Output file (default: stdout)",
    ),
    format: OutputFormat = typer.Option(
        OutputFormat.TEXT,
        "--format",
        help="Output format",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show debug logging",
    ),
    quiet: bool = typer.Option(
        False,
        "--quiet", "-q",
        help="Minimal output",
    ),
):
    """
    Compute the log-likelihood of a rate model for one discrete character.

    Example:
        traitml loglik -t tree.nwk -d traits.csv --alpha 1 --beta 2
        traitml loglik -t tree.nwk -d traits.csv -r 0.1,0.2,0.3 -m SYM --root-prior stationary
    """
    from .commands.loglik import run_loglik

    run_loglik(
        tree=tree,
        data=data,
        alpha=alpha,
        beta=beta,
        rates=rates,
        model=model.value,
        root_prior=root_prior.value,
        taxon_column=taxon_column,
        trait_column=trait_column,
        states=states,
        output=output,
        format=format.value,
        verbose=verbose,
        quiet=quiet,
    )


@app.command()
def check(
    tree: Path = typer.Option(
        ...,
        "--tree", "-t",
        help="Phylogenetic tree file (Newick format)",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    data: Optional[Path] = typer.Option(
        None,
        "--data", "-d",
        help="Trait table to check against the tree",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
    taxon_column: Optional[str] = typer.Option(
        None,
        "--taxon-column",
        help="Column with taxon names (default: first column)",
    ),
    trait_column: Optional[str] = typer.Option(
        None,
        "--trait-column",
        help="Column with observed states (default: second column)",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Show debug logging",
    ),
):
    """
    Validate a tree (and optionally a trait table) and print a summary.

    Example:
        traitml check -t tree.nwk -d traits.csv
    """
    from .commands.check import run_check

    run_check(
        tree=tree,
        data=data,
        taxon_column=taxon_column,
        trait_column=trait_column,
        verbose=verbose,
    )


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
