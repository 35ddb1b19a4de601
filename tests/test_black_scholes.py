"""Tests for the scalar Black-Scholes pricer."""

import itertools
import logging
import math

import pytest

from bsprice import (
    CALL, PUT,
    Diagnostic, NegativeMarketPriceError, NegativeTermError, PricingError,
    PricingParameters, PrecomputedTerms,
    call_price, put_price, call_put_prices, precompute, vega,
    price_call, price_put, price_call_put,
)

# (market, sigma, strike, term, rate, dividend_yield)
REF = (10.0, 0.4, 10.0, 1.0, 0.03, 0.01)

GRID = list(itertools.product(
    (50.0, 100.0, 150.0),      # market
    (0.0, 0.1, 0.35, 1.2),     # sigma
    (0.0, 80.0, 100.0, 130.0), # strike
    (0.0, 0.1, 1.0, 5.0),      # term
    (0.0, 0.05),               # rate
    (0.0, 0.03),               # dividend yield
))


def test_bs_known_values():
    assert abs(call_price(100, 0.2, 100, 1.0, 0.05) - 10.4506) < 1e-3
    assert abs(put_price(100, 0.2, 100, 1.0, 0.05) - 5.5735) < 1e-3


def test_reference_scenario():
    assert call_price(*REF) == pytest.approx(1.65382, abs=1e-5)
    assert put_price(*REF) == pytest.approx(1.45777, abs=1e-5)


# ---------------------------------------------------------------------------
# Precomputed terms
# ---------------------------------------------------------------------------
class TestPrecompute:
    def test_returns_named_terms(self):
        terms = precompute(*REF)
        assert isinstance(terms, PrecomputedTerms)
        assert terms.discounted_spot == pytest.approx(10.0 * math.exp(-0.01))
        assert terms.discounted_strike == pytest.approx(10.0 * math.exp(-0.03))
        assert 0.0 < terms.n_d2 < terms.n_d1 < 1.0

    def test_unpacks_as_four_tuple(self):
        seyt, nd1, xert, nd2 = precompute(*REF)
        assert seyt * nd1 - xert * nd2 == pytest.approx(call_price(*REF))

    def test_negative_market_is_fatal(self):
        with pytest.raises(NegativeMarketPriceError):
            precompute(-10.0, 0.4, 10.0, 1.0, 0.03)

    def test_dividend_yield_defaults_to_zero(self):
        assert precompute(10.0, 0.4, 10.0, 1.0, 0.03) == precompute(10.0, 0.4, 10.0, 1.0, 0.03, 0.0)


# ---------------------------------------------------------------------------
# Degenerate regime: no Gaussian component
# ---------------------------------------------------------------------------
class TestDegenerate:
    def test_zero_volatility_is_discounted_intrinsic(self):
        expected = 10.0 - 8.0 * math.exp(-0.05)
        assert call_price(10.0, 0.0, 8.0, 1.0, 0.05) == pytest.approx(expected)
        assert put_price(10.0, 0.0, 8.0, 1.0, 0.05) == pytest.approx(0.0)

    def test_zero_volatility_out_of_the_money(self):
        assert call_price(8.0, 0.0, 10.0, 1.0, 0.05) == pytest.approx(0.0)
        expected = 10.0 * math.exp(-0.05) - 8.0
        assert put_price(8.0, 0.0, 10.0, 1.0, 0.05) == pytest.approx(expected)

    def test_expiry_pays_intrinsic(self):
        assert call_price(10.0, 0.3, 8.0, 0.0, 0.05) == pytest.approx(2.0)
        assert put_price(10.0, 0.3, 8.0, 0.0, 0.05) == pytest.approx(0.0)
        assert put_price(8.0, 0.3, 10.0, 0.0, 0.05) == pytest.approx(2.0)

    def test_worthless_underlying(self):
        terms = precompute(0.0, 0.3, 10.0, 1.0, 0.05)
        assert terms.n_d1 == terms.n_d2 == 0.0
        assert call_price(0.0, 0.3, 10.0, 1.0, 0.05) == 0.0
        assert put_price(0.0, 0.3, 10.0, 1.0, 0.05) == pytest.approx(10.0 * math.exp(-0.05))

    def test_zero_strike_call_is_discounted_spot(self):
        assert call_price(10.0, 0.3, 0.0, 2.0, 0.05, 0.02) == pytest.approx(10.0 * math.exp(-0.04))
        assert put_price(10.0, 0.3, 0.0, 2.0, 0.05, 0.02) == pytest.approx(0.0)


# ---------------------------------------------------------------------------
# Model properties
# ---------------------------------------------------------------------------
class TestProperties:
    def test_non_negative(self):
        for p in GRID:
            call, put = call_put_prices(*p)
            assert call_price(*p) >= -1e-12, p
            assert put_price(*p) >= -1e-12, p
            assert call >= -1e-12 and put >= -1e-12, p

    def test_combined_matches_separate(self):
        for p in GRID:
            call, put = call_put_prices(*p)
            assert call == pytest.approx(call_price(*p), abs=1e-10)
            assert put == pytest.approx(put_price(*p), abs=1e-10)

    def test_put_call_parity(self):
        for p in GRID:
            seyt, _, xert, _ = precompute(*p)
            assert call_price(*p) - put_price(*p) == pytest.approx(seyt - xert, abs=1e-10)

    @pytest.mark.parametrize("k", [0.01, 0.5, 3.0, 250.0])
    def test_homogeneous_in_price_scale(self, k):
        m, sigma, strike, term, r, q = REF
        scaled = call_price(k * m, sigma, k * strike, term, r, q)
        assert scaled == pytest.approx(k * call_price(*REF), rel=1e-10)

    def test_time_scaling_invariance(self):
        m, sigma, strike, term, r, q = REF
        stretched = put_price(m, sigma / math.sqrt(10.0), strike, 10.0 * term, r / 10.0, q / 10.0)
        assert stretched == pytest.approx(put_price(*REF), rel=1e-10)

    def test_call_increases_with_volatility(self):
        prices = [call_price(100, s, 110, 0.5, 0.02) for s in (0.05, 0.1, 0.2, 0.4, 0.8)]
        assert all(b > a for a, b in zip(prices, prices[1:]))


# ---------------------------------------------------------------------------
# Short underlying
# ---------------------------------------------------------------------------
class TestShortSymmetry:
    @pytest.mark.parametrize("m,k", [(10.0, 10.0), (100.0, 80.0), (50.0, 75.0)])
    def test_call_on_short_is_put_on_long(self, m, k):
        assert call_price(-m, 0.3, -k, 1.0, 0.04, 0.01) == put_price(m, 0.3, k, 1.0, 0.04, 0.01)
        assert put_price(-m, 0.3, -k, 1.0, 0.04, 0.01) == call_price(m, 0.3, k, 1.0, 0.04, 0.01)

    def test_combined_pair_is_swapped(self):
        call, put = call_put_prices(-100.0, 0.25, -90.0, 0.75, 0.03)
        long_call, long_put = call_put_prices(100.0, 0.25, 90.0, 0.75, 0.03)
        assert call == pytest.approx(long_put)
        assert put == pytest.approx(long_call)

    def test_short_with_positive_strike_flags_strike(self):
        result = price_call(PricingParameters(-10.0, 0.3, 10.0, 1.0, 0.03))
        assert result.diagnostics == (Diagnostic.NEGATIVE_STRIKE,)
        assert result.value >= 0.0

    def test_negative_term_still_fatal_for_short(self):
        with pytest.raises(NegativeTermError):
            call_price(-10.0, 0.3, -10.0, -1.0, 0.03)


# ---------------------------------------------------------------------------
# Fatal errors and diagnostics
# ---------------------------------------------------------------------------
class TestErrors:
    @pytest.mark.parametrize("fn", [call_price, put_price, call_put_prices, precompute, vega])
    def test_negative_term_is_fatal(self, fn):
        with pytest.raises(NegativeTermError):
            fn(10.0, 0.4, 10.0, -0.5, 0.03)

    def test_fatal_errors_are_value_errors(self):
        assert issubclass(NegativeTermError, PricingError)
        assert issubclass(PricingError, ValueError)


class TestDiagnostics:
    def test_clean_inputs_log_nothing(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bsprice"):
            call_put_prices(*REF)
        assert caplog.records == []

    def test_negative_volatility_is_corrected(self, caplog):
        m, sigma, strike, term, r, q = REF
        with caplog.at_level(logging.WARNING, logger="bsprice"):
            px = call_price(m, -sigma, strike, term, r, q)
        assert px == call_price(*REF)
        assert "Negative volatility" in caplog.text

    @pytest.mark.parametrize("args,text", [
        ((10.0, 0.4, -10.0, 1.0, 0.03, 0.01), "Negative strike price"),
        ((10.0, 0.4, 10.0, 1.0, -0.03, 0.01), "Negative interest rate"),
        ((10.0, 0.4, 10.0, 1.0, 0.03, -0.01), "Negative yield"),
        ((10.0, 0.4, 10.0, 1.0, 0.03, 0.01, "spare"), "Ignoring additional arguments"),
    ])
    def test_suspicious_inputs_warn_but_price(self, caplog, args, text):
        with caplog.at_level(logging.WARNING, logger="bsprice"):
            px = put_price(*args)
        assert math.isfinite(px)
        assert text in caplog.text
        assert all(r.levelno == logging.WARNING for r in caplog.records)

    def test_diagnostics_before_fatal_term_are_logged(self, caplog):
        with caplog.at_level(logging.WARNING, logger="bsprice"):
            with pytest.raises(NegativeTermError):
                call_price(10.0, -0.4, -10.0, -1.0, 0.03)
        assert "Negative volatility" in caplog.text
        assert "Negative strike price" in caplog.text

    def test_fatal_error_carries_diagnostics(self, caplog):
        params = PricingParameters(10.0, -0.4, 10.0, -1.0, -0.03)
        with caplog.at_level(logging.DEBUG, logger="bsprice"):
            with pytest.raises(NegativeTermError) as excinfo:
                price_call(params)
        assert excinfo.value.diagnostics == (Diagnostic.NEGATIVE_VOLATILITY,)
        assert caplog.records == []

    def test_extra_arguments_do_not_change_value(self):
        assert call_price(*REF, 1.0, 2.0) == call_price(*REF)

    def test_negative_rate_proceeds_unmodified(self):
        plain = call_price(10.0, 0.4, 10.0, 1.0, -0.02)
        seyt, nd1, xert, nd2 = precompute(10.0, 0.4, 10.0, 1.0, -0.02)
        assert xert == pytest.approx(10.0 * math.exp(0.02))
        assert plain == pytest.approx(seyt * nd1 - xert * nd2)


# ---------------------------------------------------------------------------
# Result-type surface
# ---------------------------------------------------------------------------
class TestPricingResult:
    def test_values_match_float_surface(self):
        params = PricingParameters(*REF)
        assert price_call(params).value == call_price(*REF)
        assert price_put(params).value == put_price(*REF)
        assert price_call_put(params).value == call_put_prices(*REF)
        assert price_call(params).clean

    def test_collects_diagnostics_without_logging(self, caplog):
        params = PricingParameters(10.0, -0.4, 10.0, 1.0, -0.03, -0.01)
        with caplog.at_level(logging.DEBUG, logger="bsprice"):
            result = price_call_put(params)
        assert caplog.records == []
        assert result.diagnostics == (
            Diagnostic.NEGATIVE_VOLATILITY,
            Diagnostic.NEGATIVE_RATE,
            Diagnostic.NEGATIVE_YIELD,
        )
        assert not result.clean

    def test_shorted_mirrors_market_and_strike(self):
        params = PricingParameters(-10.0, 0.3, -12.0, 1.0, 0.02)
        assert params.is_short
        long = params.shorted()
        assert (long.market_price, long.strike_price) == (10.0, 12.0)
        assert not long.is_short

    def test_rejects_unknown_kind(self):
        from bsprice.black_scholes import _price
        with pytest.raises(ValueError):
            _price(PricingParameters(*REF), "straddle")


# ---------------------------------------------------------------------------
# Vega
# ---------------------------------------------------------------------------
class TestVega:
    def test_matches_finite_difference(self):
        m, sigma, strike, term, r, q = 100.0, 0.25, 105.0, 0.8, 0.03, 0.01
        h = 1e-5
        fd = (call_price(m, sigma + h, strike, term, r, q)
              - call_price(m, sigma - h, strike, term, r, q)) / (2 * h)
        assert vega(m, sigma, strike, term, r, q) == pytest.approx(fd, rel=1e-6)

    def test_same_for_put(self):
        h = 1e-5
        fd = (put_price(100, 0.3 + h, 90, 2.0, 0.01) - put_price(100, 0.3 - h, 90, 2.0, 0.01)) / (2 * h)
        assert vega(100, 0.3, 90, 2.0, 0.01) == pytest.approx(fd, rel=1e-6)

    def test_zero_in_degenerate_regime(self):
        assert vega(100, 0.0, 90, 1.0, 0.01) == 0.0
        assert vega(100, 0.3, 90, 0.0, 0.01) == 0.0

    def test_short_matches_long(self):
        assert vega(-100, 0.3, -90, 1.0, 0.01) == vega(100, 0.3, 90, 1.0, 0.01)
