"""Tests for the cached model catalog."""

import asyncio

import pytest

from openrouter_deep_research.core.exceptions import APIError, ModelCatalogError
from openrouter_deep_research.models.catalog import ModelInfo, ModelPricing
from openrouter_deep_research.services.model_catalog import ModelCatalog


class TestModelCatalog:
    @pytest.mark.asyncio
    async def test_fetches_once(self, fake_gateway):
        catalog = ModelCatalog(fake_gateway)

        first = await catalog.get_models()
        second = await catalog.get_models()

        assert first == second
        assert catalog.is_cached
        assert fake_gateway.list_models_calls == 1

    @pytest.mark.asyncio
    async def test_concurrent_first_use_fetches_once(self, fake_gateway):
        catalog = ModelCatalog(fake_gateway)
        await asyncio.gather(*(catalog.get_models() for _ in range(5)))
        assert fake_gateway.list_models_calls == 1

    @pytest.mark.asyncio
    async def test_invalidate_refetches(self, fake_gateway):
        catalog = ModelCatalog(fake_gateway)
        await catalog.get_models()

        catalog.invalidate()
        assert not catalog.is_cached
        await catalog.get_models()

        assert fake_gateway.list_models_calls == 2

    @pytest.mark.asyncio
    async def test_requires_api_key(self, fake_gateway):
        catalog = ModelCatalog(fake_gateway, has_api_key=False)
        with pytest.raises(ModelCatalogError):
            await catalog.get_models()
        assert fake_gateway.list_models_calls == 0

    @pytest.mark.asyncio
    async def test_gateway_error_is_wrapped(self, fake_gateway):
        async def failing():
            raise APIError("boom", url="https://openrouter.test/models", method="GET", status_code=500)

        fake_gateway.list_models = failing
        catalog = ModelCatalog(fake_gateway)

        with pytest.raises(ModelCatalogError) as exc_info:
            await catalog.get_models()
        assert isinstance(exc_info.value.__cause__, APIError)
        assert not catalog.is_cached

    @pytest.mark.asyncio
    async def test_prime_and_lookup(self, fake_gateway):
        catalog = ModelCatalog(fake_gateway)
        catalog.prime([ModelInfo(id="a/one", pricing=ModelPricing(prompt=0.5))])

        model = await catalog.get_model("a/one")
        table = await catalog.pricing_table()

        assert model is not None and model.id == "a/one"
        assert await catalog.get_model("missing") is None
        assert table["a/one"].prompt == 0.5
        assert fake_gateway.list_models_calls == 0


class TestModelPricing:
    def test_parses_price_strings(self):
        pricing = ModelPricing.model_validate(
            {"prompt": "0.000003", "completion": "-1", "request": "", "web_search": "-1"}
        )
        assert pricing.prompt == pytest.approx(0.000003)
        assert pricing.completion == 0.0
        assert pricing.request == 0.0
        assert pricing.web_search is None

    def test_model_info_from_api_defaults(self):
        info = ModelInfo.from_api({"id": "x/y"})
        assert info.name == "x/y"
        assert info.pricing.prompt == 0.0
        assert info.max_completion_tokens is None
