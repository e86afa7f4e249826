# Copyright 2024-2025 David Gordon Nix
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for money and VAT utilities.
"""

import pytest

from rentbook.core.primitives import (
    UnitUsageEnum,
    VatSettings,
    applicable_vat_rates,
    net_from_gross,
    round_money,
    sum_money,
    vat_from_gross,
)


class TestRoundMoney:
    """Test round-half-up rounding to cents."""

    def test_rounds_half_up(self):
        assert round_money(2.675) == 2.68
        assert round_money(1.005) == 1.01
        assert round_money(0.125) == 0.13

    def test_negative_rounds_away_from_zero(self):
        assert round_money(-0.005) == -0.01
        assert round_money(-200.004) == -200.0

    def test_none_is_zero(self):
        assert round_money(None) == 0.0

    def test_sum_money_rounds_once(self):
        assert sum_money([0.1, 0.2, 0.3]) == 0.6
        assert sum_money([100.0, None, 50.555]) == 150.56


class TestVatFromGross:
    """Test VAT extraction from gross amounts."""

    def test_zero_rate_returns_zero(self):
        assert vat_from_gross(500.0, 0) == 0.0

    def test_extracts_ten_percent(self):
        assert round_money(vat_from_gross(110.0, 10)) == 10.0

    def test_extracts_twenty_percent(self):
        assert round_money(vat_from_gross(120.0, 20)) == 20.0

    def test_is_not_rounded_internally(self):
        vat = vat_from_gross(100.0, 20)
        assert vat != round_money(vat)
        assert vat == pytest.approx(16.6666667)

    def test_negative_rate_rejected(self):
        with pytest.raises(ValueError):
            vat_from_gross(100.0, -5)

    @pytest.mark.parametrize("rate", [0, 10, 13, 19, 20])
    @pytest.mark.parametrize("gross", [0.0, 0.01, 99.99, 650.0, 1234.56])
    def test_net_plus_vat_reconstructs_gross(self, gross, rate):
        vat = round_money(vat_from_gross(gross, rate))
        net = round_money(net_from_gross(gross, rate))
        assert abs(net + vat - gross) <= 0.01 + 1e-9


class TestApplicableVatRates:
    """Test the usage-type VAT lookup table."""

    @pytest.mark.parametrize(
        "usage",
        [
            UnitUsageEnum.BUSINESS,
            UnitUsageEnum.GARAGE,
            UnitUsageEnum.PARKING,
            UnitUsageEnum.STORAGE,
        ],
    )
    def test_commercial_units(self, usage):
        rates = applicable_vat_rates(usage)
        assert (rates.rent, rates.opex, rates.heating) == (20.0, 20.0, 20.0)

    @pytest.mark.parametrize("usage", [UnitUsageEnum.RESIDENTIAL, UnitUsageEnum.APARTMENT, None])
    def test_residential_units(self, usage):
        rates = applicable_vat_rates(usage)
        assert (rates.rent, rates.opex, rates.heating) == (10.0, 10.0, 20.0)

    def test_string_usage_is_case_insensitive(self):
        assert applicable_vat_rates("Garage").rent == 20.0

    def test_unknown_usage_is_residential(self):
        assert applicable_vat_rates("castle").rent == 10.0

    def test_injected_jurisdiction_table(self):
        german = VatSettings(
            commercial_usage_types=frozenset({UnitUsageEnum.BUSINESS}),
            commercial_rate=19.0,
            residential_rate=0.0,
            heating_rate=19.0,
        )
        assert applicable_vat_rates(UnitUsageEnum.BUSINESS, german).rent == 19.0
        assert applicable_vat_rates(UnitUsageEnum.GARAGE, german).rent == 0.0
        assert applicable_vat_rates(UnitUsageEnum.GARAGE, german).heating == 19.0
