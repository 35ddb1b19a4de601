# bsprice: Black-Scholes prices and implied volatility for European options
# Public API

# Data model
from .core import (
    CALL, PUT,
    PricingParameters, PrecomputedTerms, PricingResult,
    ImpliedVolatility, ImpliedVolatilitySolution,
    SolverConfig, DEFAULT_SOLVER_CONFIG,
    Diagnostic, PricingError, NegativeTermError, NegativeMarketPriceError,
)

# Scalar pricers
from .black_scholes import (
    precompute, call_price, put_price, call_put_prices, vega,
    price_call, price_put, price_call_put,
)

# Implied volatility
from .implied_vol import (
    implied_volatility_call, implied_volatility_put, solve_implied_volatility,
)

# Vectorised pricers
from .black_scholes_vec import call_put_prices_vec, price_vec, implied_volatility_vec

__all__ = [
    # Data model
    "CALL", "PUT",
    "PricingParameters", "PrecomputedTerms", "PricingResult",
    "ImpliedVolatility", "ImpliedVolatilitySolution",
    "SolverConfig", "DEFAULT_SOLVER_CONFIG",
    "Diagnostic", "PricingError", "NegativeTermError", "NegativeMarketPriceError",
    # Scalar pricers
    "precompute", "call_price", "put_price", "call_put_prices", "vega",
    "price_call", "price_put", "price_call_put",
    # Implied volatility
    "implied_volatility_call", "implied_volatility_put", "solve_implied_volatility",
    # Vectorised
    "call_put_prices_vec", "price_vec", "implied_volatility_vec",
]

__version__ = "0.1.0"
