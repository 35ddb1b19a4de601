from __future__ import annotations
from dataclasses import dataclass, replace
from enum import Enum
from numbers import Integral
from typing import NamedTuple


CALL = "call"
PUT  = "put"


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class PricingError(ValueError):
    """Base class for conditions under which no price can be produced.

    ``diagnostics`` lists the suspicious inputs already seen when the
    fatal condition was hit.
    """
    diagnostics: tuple = ()


class NegativeTermError(PricingError):
    def __init__(self, term, diagnostics=()):
        super().__init__(f"Negative remaining term, got {term}")
        self.term = term
        self.diagnostics = tuple(diagnostics)


class NegativeMarketPriceError(PricingError):
    def __init__(self, market):
        super().__init__(f"Negative market price, got {market}")
        self.market = market


# ---------------------------------------------------------------------------
# Diagnostics: suspicious but tolerated inputs
# ---------------------------------------------------------------------------
class Diagnostic(str, Enum):
    NEGATIVE_VOLATILITY = "negative_volatility"
    NEGATIVE_STRIKE     = "negative_strike"
    NEGATIVE_RATE       = "negative_rate"
    NEGATIVE_YIELD      = "negative_yield"
    EXTRA_ARGUMENTS     = "extra_arguments"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    Diagnostic.NEGATIVE_VOLATILITY: "Negative volatility (using absolute value instead)",
    Diagnostic.NEGATIVE_STRIKE:     "Negative strike price",
    Diagnostic.NEGATIVE_RATE:       "Negative interest rate",
    Diagnostic.NEGATIVE_YIELD:      "Negative yield",
    Diagnostic.EXTRA_ARGUMENTS:     "Ignoring additional arguments",
}


# ---------------------------------------------------------------------------
# Pricing inputs and outputs
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class PricingParameters:
    """The six Black-Scholes model inputs for one option.

    Parameters
    ----------
    market_price : float
        Current price of the underlying.  Negative means a short position.
    volatility : float
        Standard deviation of the log-price over one year.
    strike_price : float
        Strike price of the option.
    remaining_term : float
        Years until expiry.
    interest_rate : float
        Continuously-compounded risk-free rate.
    dividend_yield : float
        Continuous dividend yield (default 0).

    No validation happens here: a short underlying legitimately carries
    negative prices until it is transformed with ``shorted()``.
    """
    market_price: float
    volatility: float
    strike_price: float
    remaining_term: float
    interest_rate: float
    dividend_yield: float = 0.0

    @property
    def is_short(self) -> bool:
        return self.market_price < 0.0

    def shorted(self) -> PricingParameters:
        """Mirror a short underlying onto the equivalent long one."""
        return replace(self, market_price=-self.market_price,
                       strike_price=-self.strike_price)

    def with_volatility(self, sigma: float) -> PricingParameters:
        return replace(self, volatility=sigma)


class PrecomputedTerms(NamedTuple):
    """Intermediate values shared by the call and put formulas."""
    discounted_spot: float
    n_d1: float
    discounted_strike: float
    n_d2: float


@dataclass(frozen=True)
class PricingResult:
    """A price (or ``(call, put)`` pair) with the diagnostics it raised."""
    value: float | tuple[float, float]
    diagnostics: tuple[Diagnostic, ...] = ()

    @property
    def clean(self) -> bool:
        return not self.diagnostics


class ImpliedVolatility(NamedTuple):
    """Solver output: estimate, model-minus-observed price, iterations used."""
    volatility: float
    error: float
    iterations: int

    def converged(self, tolerance: float = 1e-8) -> bool:
        return abs(self.error) <= tolerance


@dataclass(frozen=True)
class ImpliedVolatilitySolution:
    estimate: ImpliedVolatility
    diagnostics: tuple[Diagnostic, ...] = ()
    kind: str = CALL


# ---------------------------------------------------------------------------
# Solver configuration
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class SolverConfig:
    """Knobs for the implied-volatility search.

    Parameters
    ----------
    max_iterations : int
        Hard cap on pricing evaluations inside the search loop.
    price_tolerance : float
        Stop once ``|model - observed|`` falls to this (absolute, price units).
    volatility_tolerance : float
        Stop once a step in sigma is smaller than this.
    max_volatility : float
        Upper end of the search bracket ``[0, max_volatility]``.
    initial_volatility : float
        Starting point for the Newton iteration.
    min_vega : float
        Below this slope a bisection step replaces the Newton step.
    """
    max_iterations: int = 50
    price_tolerance: float = 1e-10
    volatility_tolerance: float = 1e-12
    max_volatility: float = 10.0
    initial_volatility: float = 0.3
    min_vega: float = 1e-12

    def __post_init__(self):
        if (isinstance(self.max_iterations, bool)
                or not isinstance(self.max_iterations, Integral)
                or self.max_iterations < 1):
            raise ValueError(
                f"max_iterations must be a positive integer, got {self.max_iterations}"
            )
        if self.price_tolerance <= 0:
            raise ValueError(f"price_tolerance must be positive, got {self.price_tolerance}")
        if self.volatility_tolerance <= 0:
            raise ValueError(
                f"volatility_tolerance must be positive, got {self.volatility_tolerance}"
            )
        if self.max_volatility <= 0:
            raise ValueError(f"max_volatility must be positive, got {self.max_volatility}")
        if not 0 < self.initial_volatility < self.max_volatility:
            raise ValueError(
                "initial_volatility must lie strictly inside (0, max_volatility), "
                f"got {self.initial_volatility}"
            )
        if self.min_vega < 0:
            raise ValueError(f"min_vega must be non-negative, got {self.min_vega}")


DEFAULT_SOLVER_CONFIG = SolverConfig()
