"""Tests for address canonicalization and hashing."""

from unittest.mock import AsyncMock

import pytest

from carrier_hub.adapters.geocoding.base import GeocodeResult
from carrier_hub.core.errors import NormalizationFailed
from carrier_hub.utils.address_normalizer import (
    AddressNormalizer,
    canonicalize_address,
    hash_address,
)


class TestCanonicalize:
    def test_trims_collapses_and_lowercases(self) -> None:
        assert canonicalize_address("  12  High\tSt,\n LAGOS ") == "12 high st, lagos"

    def test_none_and_blank_become_empty(self) -> None:
        assert canonicalize_address("") == ""
        assert canonicalize_address("   \t\n") == ""

    def test_hash_is_stable_sha256(self) -> None:
        digest = hash_address("12 high st")

        assert digest == hash_address("12 high st")
        assert len(digest) == 64
        assert digest != hash_address("12 high street")


class TestAddressNormalizer:
    @pytest.mark.asyncio
    async def test_equivalent_spellings_share_hash(self) -> None:
        normalizer = AddressNormalizer()

        first = await normalizer.normalize("12 High St")
        second = await normalizer.normalize("  12   high ST ")

        assert first.canonical == second.canonical == "12 high st"
        assert first.address_hash == second.address_hash
        assert first.coordinates is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw", ["", "   ", "\n\t"])
    async def test_empty_address_fails(self, raw: str) -> None:
        with pytest.raises(NormalizationFailed) as exc_info:
            await AddressNormalizer().normalize(raw)

        assert exc_info.value.code == "address_empty"

    @pytest.mark.asyncio
    async def test_geocoded_address_is_canonicalized(self) -> None:
        geocoder = AsyncMock()
        geocoder.geocode.return_value = GeocodeResult(
            formatted_address="12 High St, Ikeja, Lagos, Nigeria",
            latitude=6.6,
            longitude=3.35,
        )
        normalizer = AddressNormalizer(geocoder)

        result = await normalizer.normalize("12 high street ikeja")

        geocoder.geocode.assert_awaited_once_with("12 high street ikeja")
        assert result.canonical == "12 high st, ikeja, lagos, nigeria"
        assert result.display == "12 High St, Ikeja, Lagos, Nigeria"
        assert result.coordinates == {"latitude": 6.6, "longitude": 3.35}

    @pytest.mark.asyncio
    async def test_ungeocodable_address_fails(self) -> None:
        geocoder = AsyncMock()
        geocoder.geocode.return_value = None

        with pytest.raises(NormalizationFailed) as exc_info:
            await AddressNormalizer(geocoder).normalize("nowhere at all")

        assert exc_info.value.code == "address_not_geocodable"
