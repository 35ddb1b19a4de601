# black_scholes_vec.py
# Vectorised Black-Scholes prices and implied volatility.
# All public functions accept scalars *or* NumPy arrays and broadcast.

from __future__ import annotations

import logging
from typing import Optional

import numpy as np
from scipy.stats import norm

from .core import DEFAULT_SOLVER_CONFIG, Diagnostic, NegativeTermError, SolverConfig

__all__ = ["call_put_prices_vec", "price_vec", "implied_volatility_vec"]

logger = logging.getLogger(__name__)

_N = norm.cdf   # vectorised standard-normal CDF
_n = norm.pdf   # vectorised standard-normal PDF


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------
def _is_call(kind) -> np.ndarray:
    """Return boolean mask: True where kind == 'call'."""
    kind = np.asarray(kind)
    if kind.ndim == 0:
        k = str(kind)
        if k not in ("call", "put"):
            raise ValueError(f"kind must be 'call' or 'put', got {k!r}")
        return np.bool_(k == "call")
    bad = [str(k) for k in kind.flat if str(k) not in ("call", "put")]
    if bad:
        raise ValueError(f"kind must be 'call' or 'put', got {bad[0]!r}")
    return np.array([str(k) == "call" for k in kind.flat], dtype=bool).reshape(kind.shape)


def _report(counts: dict) -> None:
    for diag, n in counts.items():
        if n:
            logger.warning("%s (%d entries)", diag.message, n)


def _prepare(market, sigma, strike, term, rate, q):
    """Broadcast, mirror shorts, report diagnostics, reject negative terms."""
    market, sigma, strike, term, rate, q = np.broadcast_arrays(
        *(np.asarray(x, dtype=float) for x in (market, sigma, strike, term, rate, q))
    )
    short = market < 0
    market = np.where(short, -market, market)
    strike = np.where(short, -strike, strike)

    _report({
        Diagnostic.NEGATIVE_VOLATILITY: int(np.count_nonzero(sigma < 0)),
        Diagnostic.NEGATIVE_STRIKE:     int(np.count_nonzero(strike < 0)),
        Diagnostic.NEGATIVE_RATE:       int(np.count_nonzero(rate < 0)),
        Diagnostic.NEGATIVE_YIELD:      int(np.count_nonzero(q < 0)),
    })
    if np.any(term < 0):
        raise NegativeTermError(float(np.min(term)))
    return market, np.abs(sigma), strike, term, rate, q, short


def _terms(market, sigma, strike, term, rate, q):
    """Discounted spot, N(d1), discounted strike, N(d2), plus d1 and the
    degenerate mask for the vega computation."""
    seyt = market * np.exp(-q * term)
    xert = strike * np.exp(-rate * term)
    degenerate = (sigma == 0) | (term == 0) | (market == 0) | (strike <= 0)
    with np.errstate(divide="ignore", invalid="ignore"):
        ssrt = sigma * np.sqrt(term)
        d1 = (np.log(market / strike) + (rate - q + 0.5 * sigma * sigma) * term) / ssrt
        d2 = d1 - ssrt
    d1 = np.where(degenerate, 0.0, d1)
    d2 = np.where(degenerate, 0.0, d2)
    step = np.where(seyt > xert, 1.0, 0.0)
    nd1 = np.where(degenerate, step, _N(d1))
    nd2 = np.where(degenerate, step, _N(d2))
    return seyt, nd1, xert, nd2, d1, degenerate


# ---------------------------------------------------------------------------
# Vectorised prices
# ---------------------------------------------------------------------------
def call_put_prices_vec(market, sigma, strike, term, rate, dividend_yield=0.0):
    """Vectorised ``(calls, puts)``.

    Same rules as the scalar pricer, applied element-wise: negative market
    prices are shorts, the degenerate regime prices at the discounted
    intrinsic value, and any negative term is fatal for the whole batch.

    Returns
    -------
    tuple[np.ndarray, np.ndarray]
        Call and put prices (shape of the broadcast inputs).
    """
    market, sigma, strike, term, rate, q, short = _prepare(
        market, sigma, strike, term, rate, dividend_yield
    )
    seyt, nd1, xert, nd2, _, _ = _terms(market, sigma, strike, term, rate, q)
    call = seyt * nd1 - xert * nd2
    put = call - seyt + xert
    return np.where(short, put, call), np.where(short, call, put)


def price_vec(market, sigma, strike, term, rate, dividend_yield=0.0, kind="call"):
    """Vectorised price; ``kind`` is ``"call"``/``"put"`` or an array of them."""
    is_call = _is_call(kind)
    market, sigma, strike, term, rate, q, short = _prepare(
        market, sigma, strike, term, rate, dividend_yield
    )
    seyt, nd1, xert, nd2, _, _ = _terms(market, sigma, strike, term, rate, q)
    call_px = seyt * nd1 - xert * nd2
    put_px  = seyt * (nd1 - 1.0) - xert * (nd2 - 1.0)
    return np.where(is_call ^ short, call_px, put_px)


# ---------------------------------------------------------------------------
# Vectorised implied-vol (bracketed Newton-Raphson)
# ---------------------------------------------------------------------------
def implied_volatility_vec(
    market, observed, strike, term, rate, dividend_yield=0.0, kind="call",
    *, config: Optional[SolverConfig] = None,
):
    """Recover implied vols from market prices, element-wise.

    Runs the scalar solver's iteration on whole arrays: Newton on vega
    inside a shrinking ``[0, max_volatility]`` bracket, bisecting where
    vega is negligible or the step escapes the bracket.

    Returns
    -------
    tuple[np.ndarray, np.ndarray, np.ndarray]
        ``(vols, errors, iterations)``.  ``errors`` is model minus observed
        price at the returned vol.  Entries with ``market * strike <= 0``,
        zero term or a negative observed price are ``NaN`` with 0 iterations.
    """
    config = DEFAULT_SOLVER_CONFIG if config is None else config
    is_call = _is_call(kind)
    observed = np.asarray(observed, dtype=float)
    market, _, strike, term, rate, q, short = _prepare(
        market, config.initial_volatility, strike, term, rate, dividend_yield
    )
    market, strike, term, rate, q, observed, short, is_call = np.broadcast_arrays(
        market, strike, term, rate, q, observed, short, is_call
    )
    use_call = is_call ^ short

    valid = (market * strike > 0) & (term > 0) & (observed >= 0)
    # neutral placeholders keep the arithmetic quiet on rejected entries
    market = np.where(valid, market, 1.0)
    strike = np.where(valid, strike, 1.0)
    term = np.where(valid, term, 1.0)
    target = np.where(valid, observed, 0.0)

    def model(sigma):
        seyt, nd1, xert, nd2, d1, degenerate = _terms(market, sigma, strike, term, rate, q)
        call_px = seyt * nd1 - xert * nd2
        put_px = seyt * (nd1 - 1.0) - xert * (nd2 - 1.0)
        slope = np.where(degenerate, 0.0, seyt * _n(d1) * np.sqrt(term))
        return np.where(use_call, call_px, put_px), slope

    shape = market.shape
    lo = np.zeros(shape)
    hi = np.full(shape, config.max_volatility)
    floor, _ = model(lo)
    ceiling, _ = model(hi)
    below = valid & (target <= floor)
    above = valid & ~below & (target >= ceiling)

    vols = np.where(below, 0.0, np.where(above, hi, np.nan))
    errors = np.where(below, floor - target, np.where(above, ceiling - target, np.nan))
    iterations = np.zeros(shape, dtype=int)

    sigma = np.full(shape, config.initial_volatility)
    active = valid & ~below & ~above
    for it in range(1, config.max_iterations + 1):
        if not np.any(active):
            break
        px, slope = model(sigma)
        err = px - target
        vols = np.where(active, sigma, vols)
        errors = np.where(active, err, errors)
        iterations = np.where(active, it, iterations)

        active = active & (np.abs(err) > config.price_tolerance)
        hi = np.where(active & (err > 0), sigma, hi)
        lo = np.where(active & (err <= 0), sigma, lo)

        with np.errstate(divide="ignore", invalid="ignore"):
            newton = sigma - err / slope
        ok = (slope > config.min_vega) & (newton > lo) & (newton < hi)
        candidate = np.where(ok, newton, 0.5 * (lo + hi))

        active = active & (np.abs(candidate - sigma) > config.volatility_tolerance)
        sigma = np.where(active, candidate, sigma)

    if np.any(active):
        logger.info("Implied volatility not converged for %d entries after %d iterations",
                    int(np.count_nonzero(active)), config.max_iterations)
    return vols, errors, iterations
