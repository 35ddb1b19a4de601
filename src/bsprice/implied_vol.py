"""Implied volatility by safeguarded Newton iteration.

The model price is non-decreasing in sigma, so the search keeps a
bracket ``[lo, hi]`` around the root.  Each step tries Newton on vega and
falls back to bisection when vega is negligible or the Newton step would
leave the bracket.  The loop is capped by ``SolverConfig.max_iterations``;
running out of iterations is reported through the returned error, never
raised.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from .black_scholes import (
    _check, _formula, _reporting_failures, _resolve, _report, _terms, _vega,
)
from .core import (
    CALL, PUT, DEFAULT_SOLVER_CONFIG,
    ImpliedVolatility, ImpliedVolatilitySolution, PricingParameters, SolverConfig,
)

__all__ = [
    "implied_volatility_call",
    "implied_volatility_put",
    "solve_implied_volatility",
]

logger = logging.getLogger(__name__)


def _config(config: Optional[SolverConfig], max_iterations: Optional[int]) -> SolverConfig:
    config = DEFAULT_SOLVER_CONFIG if config is None else config
    if max_iterations is not None:
        config = replace(config, max_iterations=max_iterations)
    return config


def _search(
    params: PricingParameters, kind: str, observed: float, config: SolverConfig
) -> ImpliedVolatility:
    """Root-find sigma for checked long-position inputs with K, T > 0."""

    def model(sigma: float) -> float:
        return _formula(_terms(params.with_volatility(sigma)), kind)

    lo, hi = 0.0, config.max_volatility

    floor = model(lo)
    if observed <= floor:
        return ImpliedVolatility(lo, floor - observed, 0)
    ceiling = model(hi)
    if observed >= ceiling:
        logger.info("Observed price %.10g at or above the sigma=%g price %.10g",
                    observed, hi, ceiling)
        return ImpliedVolatility(hi, ceiling - observed, 0)

    sigma = config.initial_volatility
    best = ImpliedVolatility(sigma, float("nan"), 0)
    for iteration in range(1, config.max_iterations + 1):
        p = params.with_volatility(sigma)
        error = _formula(_terms(p), kind) - observed
        best = ImpliedVolatility(sigma, error, iteration)
        logger.debug("iter %d: sigma=%.12g error=%.3e", iteration, sigma, error)
        if abs(error) <= config.price_tolerance:
            return best

        if error > 0.0:
            hi = sigma
        else:
            lo = sigma

        slope = _vega(p)
        candidate = sigma - error / slope if slope > config.min_vega else None
        if candidate is None or not lo < candidate < hi:
            candidate = 0.5 * (lo + hi)

        if abs(candidate - sigma) <= config.volatility_tolerance:
            return best
        sigma = candidate

    logger.info("Implied volatility not converged after %d iterations "
                "(sigma=%.12g, error=%.3e)", best.iterations, best.volatility, best.error)
    return best


def _solve(
    params: PricingParameters,
    kind: str,
    observed_price: float,
    config: SolverConfig,
    n_extra: int = 0,
) -> ImpliedVolatilitySolution:
    requested = kind
    params, kind = _resolve(params, kind)
    params, diagnostics = _check(params, n_extra)
    if params.remaining_term == 0.0 or params.market_price * params.strike_price <= 0.0:
        raise ValueError(
            "implied volatility needs market * strike > 0 and remaining term > 0, got "
            f"market={params.market_price}, strike={params.strike_price}, "
            f"term={params.remaining_term}"
        )
    if observed_price < 0.0:
        raise ValueError(f"observed price must be non-negative, got {observed_price}")

    estimate = _search(params, kind, float(observed_price), config)
    return ImpliedVolatilitySolution(estimate, diagnostics, requested)


def solve_implied_volatility(
    kind: str,
    market: float,
    observed_price: float,
    strike: float,
    term: float,
    rate: float,
    dividend_yield: float = 0.0,
    *,
    config: Optional[SolverConfig] = None,
    max_iterations: Optional[int] = None,
) -> ImpliedVolatilitySolution:
    """Volatility reproducing ``observed_price``, with diagnostics attached.

    Parameters
    ----------
    kind : str
        ``"call"`` or ``"put"``.
    market, strike : float
        Same sign and non-zero.  Negative values denote a short underlying.
    term : float
        Strictly positive years to expiry.
    config : SolverConfig, optional
        Iteration cap, tolerances and search bracket.
    max_iterations : int, optional
        Shortcut overriding ``config.max_iterations``.

    Returns
    -------
    ImpliedVolatilitySolution
        ``estimate`` is ``(volatility, error, iterations)`` where ``error``
        is the model price at ``volatility`` minus ``observed_price``.
    """
    config = _config(config, max_iterations)
    params = PricingParameters(market, config.initial_volatility, strike,
                               term, rate, dividend_yield)
    return _solve(params, kind, observed_price, config)


def implied_volatility_call(market, observed_price, strike, term, rate,
                            dividend_yield=0.0, *extra,
                            config: Optional[SolverConfig] = None,
                            max_iterations: Optional[int] = None) -> ImpliedVolatility:
    """``(volatility, error, iterations)`` implied by a call price."""
    config = _config(config, max_iterations)
    params = PricingParameters(market, config.initial_volatility, strike,
                               term, rate, dividend_yield)
    with _reporting_failures():
        solution = _solve(params, CALL, observed_price, config, len(extra))
    _report(solution.diagnostics)
    return solution.estimate


def implied_volatility_put(market, observed_price, strike, term, rate,
                           dividend_yield=0.0, *extra,
                           config: Optional[SolverConfig] = None,
                           max_iterations: Optional[int] = None) -> ImpliedVolatility:
    """``(volatility, error, iterations)`` implied by a put price."""
    config = _config(config, max_iterations)
    params = PricingParameters(market, config.initial_volatility, strike,
                               term, rate, dividend_yield)
    with _reporting_failures():
        solution = _solve(params, PUT, observed_price, config, len(extra))
    _report(solution.diagnostics)
    return solution.estimate
