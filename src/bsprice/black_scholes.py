"""Closed-form Black-Scholes prices for European options.

Two surfaces share one computation path:

* ``price_call`` / ``price_put`` / ``price_call_put`` take a
  ``PricingParameters`` and return a ``PricingResult`` carrying the
  diagnostics raised by suspicious inputs.  Nothing is logged.
* ``call_price`` / ``put_price`` / ``call_put_prices`` take the six
  model inputs positionally, return plain floats and report diagnostics
  as WARNING records on this module's logger.

A negative market price denotes a short underlying: a call on a short is
priced as a put on the long with the strike negated, and vice versa.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from math import exp, log, sqrt

from scipy.stats import norm

from .core import (
    CALL, PUT,
    Diagnostic, NegativeMarketPriceError, NegativeTermError, PricingError,
    PrecomputedTerms, PricingParameters, PricingResult,
)

__all__ = [
    "precompute",
    "call_price", "put_price", "call_put_prices", "vega",
    "price_call", "price_put", "price_call_put",
]

logger = logging.getLogger(__name__)

_N = norm.cdf   # standard-normal CDF
_n = norm.pdf   # standard-normal PDF

_OPPOSITE = {CALL: PUT, PUT: CALL}


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------
def _check(
    params: PricingParameters, n_extra: int = 0
) -> tuple[PricingParameters, tuple[Diagnostic, ...]]:
    """Validate long-position inputs; return corrected params + diagnostics."""
    if params.market_price < 0.0:
        raise NegativeMarketPriceError(params.market_price)

    diagnostics = []
    if params.volatility < 0.0:
        diagnostics.append(Diagnostic.NEGATIVE_VOLATILITY)
        params = params.with_volatility(-params.volatility)
    if params.strike_price < 0.0:
        diagnostics.append(Diagnostic.NEGATIVE_STRIKE)
    if params.remaining_term < 0.0:
        raise NegativeTermError(params.remaining_term, diagnostics)
    if params.interest_rate < 0.0:
        diagnostics.append(Diagnostic.NEGATIVE_RATE)
    if params.dividend_yield < 0.0:
        diagnostics.append(Diagnostic.NEGATIVE_YIELD)
    if n_extra > 0:
        diagnostics.append(Diagnostic.EXTRA_ARGUMENTS)
    return params, tuple(diagnostics)


def _is_degenerate(p: PricingParameters) -> bool:
    """True where the lognormal density collapses onto a single point."""
    return (p.volatility == 0.0 or p.remaining_term == 0.0
            or p.market_price == 0.0 or p.strike_price <= 0.0)


def _d1_d2(market, sigma, strike, term, rate, dividend_yield):
    ssrt = sigma * sqrt(term)
    d1 = (log(market / strike)
          + (rate - dividend_yield + 0.5 * sigma * sigma) * term) / ssrt
    return d1, d1 - ssrt


def _terms(p: PricingParameters) -> PrecomputedTerms:
    """Four intermediate values for already-checked long-position inputs."""
    seyt = p.market_price * exp(-p.dividend_yield * p.remaining_term)
    xert = p.strike_price * exp(-p.interest_rate * p.remaining_term)
    if _is_degenerate(p):
        # zero-width distribution: all mass lands on one side of the strike
        nd1 = nd2 = 1.0 if seyt > xert else 0.0
    else:
        d1, d2 = _d1_d2(p.market_price, p.volatility, p.strike_price,
                        p.remaining_term, p.interest_rate, p.dividend_yield)
        nd1 = float(_N(d1))
        nd2 = float(_N(d2))
    return PrecomputedTerms(seyt, nd1, xert, nd2)


def _vega(p: PricingParameters) -> float:
    """dPrice/dSigma for checked long-position inputs (same for call and put)."""
    if _is_degenerate(p):
        return 0.0
    d1, _ = _d1_d2(p.market_price, p.volatility, p.strike_price,
                   p.remaining_term, p.interest_rate, p.dividend_yield)
    seyt = p.market_price * exp(-p.dividend_yield * p.remaining_term)
    return float(seyt * _n(d1) * sqrt(p.remaining_term))


def _formula(terms: PrecomputedTerms, kind: str) -> float:
    seyt, nd1, xert, nd2 = terms
    if kind == CALL:
        return seyt * nd1 - xert * nd2
    return seyt * (nd1 - 1.0) - xert * (nd2 - 1.0)


def _resolve(params: PricingParameters, kind: str) -> tuple[PricingParameters, str]:
    """Map a short underlying onto the long one and the opposite formula."""
    if kind not in _OPPOSITE:
        raise ValueError(f"kind must be 'call' or 'put', got {kind!r}")
    if params.is_short:
        return params.shorted(), _OPPOSITE[kind]
    return params, kind


def _price(params: PricingParameters, kind: str, n_extra: int = 0) -> PricingResult:
    params, kind = _resolve(params, kind)
    params, diagnostics = _check(params, n_extra)
    return PricingResult(_formula(_terms(params), kind), diagnostics)


def _price_pair(params: PricingParameters, n_extra: int = 0) -> PricingResult:
    short = params.is_short
    if short:
        params = params.shorted()
    params, diagnostics = _check(params, n_extra)
    seyt, nd1, xert, nd2 = _terms(params)
    call = seyt * nd1 - xert * nd2
    put = call - seyt + xert
    # on the mirrored long the roles of call and put are exchanged
    pair = (put, call) if short else (call, put)
    return PricingResult(pair, diagnostics)


def _report(diagnostics) -> None:
    for d in diagnostics:
        logger.warning(d.message)


@contextmanager
def _reporting_failures():
    """Log the diagnostics carried by a fatal error before it propagates."""
    try:
        yield
    except PricingError as exc:
        _report(exc.diagnostics)
        raise


# ---------------------------------------------------------------------------
# Result-type surface
# ---------------------------------------------------------------------------
def price_call(params: PricingParameters) -> PricingResult:
    return _price(params, CALL)


def price_put(params: PricingParameters) -> PricingResult:
    return _price(params, PUT)


def price_call_put(params: PricingParameters) -> PricingResult:
    """Call and put from a single evaluation of N(d1), N(d2).

    The put comes from put-call parity, ``put = call - S e^{-qT} + K e^{-rT}``.
    """
    return _price_pair(params)


# ---------------------------------------------------------------------------
# Float surface
# ---------------------------------------------------------------------------
def precompute(market, sigma, strike, term, rate, dividend_yield=0.0,
               *extra) -> PrecomputedTerms:
    """Discounted spot, N(d1), discounted strike and N(d2).

    Unlike the pricers this does not mirror short positions, so a
    negative ``market`` raises ``NegativeMarketPriceError``.
    """
    params = PricingParameters(market, sigma, strike, term, rate, dividend_yield)
    with _reporting_failures():
        params, diagnostics = _check(params, len(extra))
    _report(diagnostics)
    return _terms(params)


def call_price(market, sigma, strike, term, rate, dividend_yield=0.0,
               *extra) -> float:
    """Black-Scholes value of a European call.

    Parameters
    ----------
    market : float
        Current price of the underlying (negative for a short).
    sigma : float
        Annual volatility of the log-price.
    strike : float
        Strike price.
    term : float
        Years to expiry.  Negative raises ``NegativeTermError``.
    rate : float
        Continuously-compounded risk-free rate.
    dividend_yield : float
        Continuous dividend yield (default 0).

    Any further positional arguments are ignored with a diagnostic.
    """
    params = PricingParameters(market, sigma, strike, term, rate, dividend_yield)
    with _reporting_failures():
        result = _price(params, CALL, len(extra))
    _report(result.diagnostics)
    return result.value


def put_price(market, sigma, strike, term, rate, dividend_yield=0.0,
              *extra) -> float:
    """Black-Scholes value of a European put.  Arguments as ``call_price``.

    Relative accuracy degrades when the put is worth little compared with
    the underlying, since the value is a difference of two large terms.
    """
    params = PricingParameters(market, sigma, strike, term, rate, dividend_yield)
    with _reporting_failures():
        result = _price(params, PUT, len(extra))
    _report(result.diagnostics)
    return result.value


def call_put_prices(market, sigma, strike, term, rate, dividend_yield=0.0,
                    *extra) -> tuple[float, float]:
    """``(call, put)`` for the same inputs, cheaper than two separate calls."""
    params = PricingParameters(market, sigma, strike, term, rate, dividend_yield)
    with _reporting_failures():
        result = _price_pair(params, len(extra))
    _report(result.diagnostics)
    return result.value


def vega(market, sigma, strike, term, rate, dividend_yield=0.0) -> float:
    """Analytic dPrice/dSigma, identical for the call and the put.

    Returns 0.0 where the price has no Gaussian component (zero volatility,
    zero term, zero market price or non-positive strike).
    """
    params = PricingParameters(market, sigma, strike, term, rate, dividend_yield)
    if params.is_short:
        params = params.shorted()
    with _reporting_failures():
        params, diagnostics = _check(params)
    _report(diagnostics)
    return _vega(params)
