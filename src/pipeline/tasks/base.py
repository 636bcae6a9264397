# src/pipeline/tasks/base.py — v1
"""Abstract research task: the unit the phase orchestrators are generic over.

A task owns its request model, how that request maps to a cache key, and
how quick and deep task specs are built from it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from researchcache.cache.cache_key import derive_cache_key
from researchcache.core.errors import CacheCorruptionError, RequestValidationError
from researchcache.core.models import GenerationRequest, GenerationResult
from researchcache.llm.models import TaskSpec


class BaseResearchTask(ABC):
    """Quick/deep research task contract."""

    name: str = "research"
    request_model: type[GenerationRequest] = GenerationRequest

    def parse_request(self, payload: Any) -> GenerationRequest:
        """Validate caller input.

        Raises:
            RequestValidationError: If the payload does not fit request_model.
        """
        if isinstance(payload, self.request_model):
            return payload
        try:
            return self.request_model.model_validate(payload)
        except ValidationError as e:
            raise RequestValidationError(
                f"Invalid {self.name} request", issues=_issues(e)
            ) from e

    def reparse_cached_params(self, cache_key: str, search_params: Any) -> GenerationRequest:
        """Re-validate search params read back from the cache.

        Raises:
            CacheCorruptionError: If the stored params no longer validate.
        """
        try:
            return self.request_model.model_validate(search_params)
        except ValidationError as e:
            raise CacheCorruptionError(cache_key, issues=_issues(e)) from e

    def cache_key(self, request: GenerationRequest) -> str:
        """Derive the cache identity for a request."""
        return derive_cache_key(request)

    def search_params(self, request: GenerationRequest) -> dict[str, Any]:
        """The request as stored alongside cached results."""
        return request.model_dump(mode="json")

    @abstractmethod
    def quick_spec(self, request: GenerationRequest) -> TaskSpec:
        """Spec for the fast synchronous phase."""

    @abstractmethod
    def deep_spec(self, request: GenerationRequest, quick_results: Any) -> TaskSpec:
        """Spec for the heavier background phase."""

    def finalize_deep(
        self, request: GenerationRequest, result: GenerationResult
    ) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        """Split a deep result into (cached results payload, sources)."""
        data = dict(result.data)
        return data, list(data.get("sources") or [])


def _issues(error: ValidationError) -> list[dict[str, Any]]:
    return [
        {"message": err["msg"], "path": [str(p) for p in err["loc"]]}
        for err in error.errors()
    ]
