"""Cached model list with an explicit lifecycle.

Construct one catalog at startup and pass it down; call ``invalidate`` to
force a refetch.
"""

import asyncio

import logfire

from openrouter_deep_research.core.exceptions import APIError, ModelCatalogError
from openrouter_deep_research.models.catalog import ModelInfo, ModelPricing
from openrouter_deep_research.services.gateway import ChatGateway


class ModelCatalog:
    """Fetches the gateway's model list once and serves it from memory."""

    def __init__(self, gateway: ChatGateway, has_api_key: bool = True):
        self._gateway = gateway
        self._has_api_key = has_api_key
        self._models: list[ModelInfo] | None = None
        self._lock = asyncio.Lock()

    @property
    def is_cached(self) -> bool:
        return self._models is not None

    def invalidate(self) -> None:
        self._models = None

    def prime(self, models: list[ModelInfo]) -> None:
        """Seed the cache without a network call."""
        self._models = list(models)

    async def get_models(self) -> list[ModelInfo]:
        if not self._has_api_key:
            raise ModelCatalogError("API key is required to fetch models")
        if self._models is not None:
            return self._models

        async with self._lock:
            if self._models is None:
                try:
                    models = await self._gateway.list_models()
                except APIError as e:
                    raise ModelCatalogError(str(e)) from e
                logfire.info("Model catalog loaded", count=len(models))
                self._models = models
        return self._models

    async def get_model(self, model_id: str) -> ModelInfo | None:
        return next((m for m in await self.get_models() if m.id == model_id), None)

    async def pricing_table(self) -> dict[str, ModelPricing]:
        return {m.id: m.pricing for m in await self.get_models()}
