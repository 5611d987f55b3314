"""
Command-line interface for the double-boundary toolkit.

This CLI provides access to:
- American exercise boundaries (single and double regime)
- European pricing and Greeks (Black-Scholes)
- Implied volatility solving
"""

import logging

import click

from double_boundary.boundary.solver import solve_boundaries
from double_boundary.core.black_scholes import black_scholes_price, calculate_greeks
from double_boundary.diagnostics.bounds import BoundsViolationError
from double_boundary.solvers.implied_vol import implied_volatility
from double_boundary.utils.constants import DEFAULT_COLLOCATION_POINTS
from double_boundary.utils.types import FAST, HIGH_PRECISION, STANDARD, ContractParameters

PROFILES = {"fast": FAST, "standard": STANDARD, "high": HIGH_PRECISION}


@click.group()
@click.version_option(version="1.0.0")
@click.option("--verbose", is_flag=True, help="Log solver fallbacks and summaries")
def cli(verbose):
    """Double-boundary American option toolkit."""
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s %(levelname)s %(message)s")


@cli.command()
@click.option("--spot", "-S", type=float, required=True, help="Spot price")
@click.option("--strike", "-K", type=float, required=True, help="Strike price")
@click.option("--time", "-T", type=float, required=True, help="Time to expiry (years)")
@click.option("--rate", "-r", type=float, required=True, help="Risk-free rate")
@click.option("--div", "-q", type=float, default=0.0, help="Dividend yield")
@click.option("--vol", "-v", type=float, required=True, help="Volatility (annualized)")
@click.option("--type", "-t", type=click.Choice(["call", "put"]), default="put")
@click.option(
    "--points",
    "-n",
    type=int,
    default=DEFAULT_COLLOCATION_POINTS,
    show_default=True,
    help="Collocation points",
)
@click.option("--no-refine", is_flag=True, help="Stop after the QD+ approximation")
@click.option("--profile", type=click.Choice(sorted(PROFILES)), default="standard")
@click.option("--paths", is_flag=True, help="Print the boundary at every collocation time")
def boundary(spot, strike, time, rate, div, vol, type, points, no_refine, profile, paths):
    """Compute the early-exercise boundaries of an American option."""
    params = ContractParameters(
        S=spot,
        K=strike,
        T=time,
        r=rate,
        q=div,
        sigma=vol,
        option_type=type,
        collocation_points=points,
        refine=not no_refine,
    )
    try:
        solution = solve_boundaries(params, PROFILES[profile], include_paths=paths)
    except BoundsViolationError as e:
        raise click.BadParameter(str(e)) from e

    click.echo(f"\n{type.capitalize()} exercise boundaries ({solution.regime} regime)")
    click.echo(f"  Method:         {solution.method}")
    click.echo(f"  Upper boundary: {solution.upper_boundary:>12.6f}")
    click.echo(f"  Lower boundary: {solution.lower_boundary:>12.6f}")
    if solution.is_refined:
        click.echo(f"  QD+ upper:      {solution.qd_upper_boundary:>12.6f}")
        click.echo(f"  QD+ lower:      {solution.qd_lower_boundary:>12.6f}")
    if solution.crossing_time > 0.0:
        click.echo(f"  Crossing time:  {solution.crossing_time:>12.6f}")
    click.echo(f"  Status:         {solution.status.name} ({solution.iterations} iterations)")
    click.echo(f"  Valid:          {solution.is_valid}")

    if paths:
        click.echo(f"\n{'tau':>12} {'upper':>14} {'lower':>14}")
        for tau, up, low in zip(
            solution.tau_grid, solution.upper_boundary_path, solution.lower_boundary_path
        ):
            click.echo(f"{tau:>12.6f} {up:>14.6f} {low:>14.6f}")


@cli.command()
@click.option("--spot", "-S", type=float, required=True, help="Spot price")
@click.option("--strike", "-K", type=float, required=True, help="Strike price")
@click.option("--time", "-T", type=float, required=True, help="Time to expiry (years)")
@click.option("--rate", "-r", type=float, required=True, help="Risk-free rate")
@click.option("--vol", "-v", type=float, required=True, help="Volatility (annualized)")
@click.option("--div", "-q", type=float, default=0.0, help="Dividend yield")
@click.option("--type", "-t", type=click.Choice(["call", "put"]), default="call")
def price(spot, strike, time, rate, vol, div, type):
    """Calculate European option price using Black-Scholes."""
    price_value = black_scholes_price(spot, strike, time, rate, vol, div, type)
    click.echo(f"\n{type.capitalize()} Option Price: {price_value:.4f}")


@cli.command()
@click.option("--spot", "-S", type=float, required=True, help="Spot price")
@click.option("--strike", "-K", type=float, required=True, help="Strike price")
@click.option("--time", "-T", type=float, required=True, help="Time to expiry (years)")
@click.option("--rate", "-r", type=float, required=True, help="Risk-free rate")
@click.option("--vol", "-v", type=float, required=True, help="Volatility")
@click.option("--div", "-q", type=float, default=0.0, help="Dividend yield")
@click.option("--type", "-t", type=click.Choice(["call", "put"]), default="call")
def greeks(spot, strike, time, rate, vol, div, type):
    """Calculate all European option Greeks."""
    greeks_values = calculate_greeks(spot, strike, time, rate, vol, div, type)

    click.echo(f"\nGreeks for {type.capitalize()} Option:")
    click.echo(f"  Delta:  {greeks_values.delta:>10.6f}")
    click.echo(f"  Gamma:  {greeks_values.gamma:>10.6f}")
    click.echo(f"  Vega:   {greeks_values.vega:>10.6f}")
    click.echo(f"  Theta:  {greeks_values.theta:>10.6f} (per day)")
    click.echo(f"  Rho:    {greeks_values.rho:>10.6f}")


@cli.command()
@click.option("--market-price", "-p", type=float, required=True, help="Market price")
@click.option("--spot", "-S", type=float, required=True, help="Spot price")
@click.option("--strike", "-K", type=float, required=True, help="Strike price")
@click.option("--time", "-T", type=float, required=True, help="Time to expiry (years)")
@click.option("--rate", "-r", type=float, required=True, help="Risk-free rate")
@click.option("--div", "-q", type=float, default=0.0, help="Dividend yield")
@click.option("--type", "-t", type=click.Choice(["call", "put"]), default="call")
def iv(market_price, spot, strike, time, rate, div, type):
    """Solve for implied volatility."""
    try:
        result = implied_volatility(market_price, spot, strike, time, rate, div, type)
    except BoundsViolationError as e:
        click.echo(f"\nError: {e}", err=True)
        return

    if result.converged:
        click.echo(f"\nImplied Volatility: {result.value:.4f} ({result.value*100:.2f}%)")
        click.echo(f"Method: {result.method}")
        click.echo(f"Iterations: {result.iterations}")
    else:
        click.echo(f"\nSolver failed ({result.status.name}): {result.message}", err=True)


if __name__ == "__main__":
    cli()
