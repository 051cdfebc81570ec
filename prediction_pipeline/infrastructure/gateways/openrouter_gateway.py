"""
Infrastructure Gateway - OpenRouter Implementation

This module implements the prediction provider gateway using the OpenRouter
chat completions API.
"""

from typing import Any, Dict

import httpx
import structlog

from prediction_pipeline.domain.entities.errors import (
    ProviderError,
    ProviderTransientError,
    ProviderValidationError,
)
from prediction_pipeline.domain.entities.prediction import PredictionPrompt
from prediction_pipeline.domain.gateways.prediction_provider_gateway import (
    IPredictionProviderGateway,
)

logger = structlog.get_logger(__name__)

_TRANSIENT_STATUS_CODES = {408, 409, 425, 429}


class OpenRouterGateway(IPredictionProviderGateway):
    """Implementation of the prediction provider gateway using HTTP client."""

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://openrouter.ai/api/v1",
        timeout: float = 90.0,
        referer: str = "",
        app_title: str = "",
    ):
        """
        Initialize OpenRouter gateway.

        Args:
            api_key: OpenRouter API key
            base_url: Base URL of the OpenRouter API
            timeout: Transport timeout in seconds; the dispatcher applies its
                own per-call deadline on top of it
            referer: Value of the ``HTTP-Referer`` attribution header
            app_title: Value of the ``X-Title`` attribution header
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.referer = referer
        self.app_title = app_title

    def _headers(self) -> Dict[str, str]:
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        if self.app_title:
            headers["X-Title"] = self.app_title
        return headers

    async def complete(self, model_name: str, prompt: PredictionPrompt) -> str:
        """Return the raw text produced by the model."""

        url = f"{self.base_url}/chat/completions"
        body: Dict[str, Any] = {
            "model": model_name,
            "messages": [
                {"role": "system", "content": prompt.system_message},
                {"role": "user", "content": prompt.user_message},
            ],
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(url, json=body, headers=self._headers())
                response.raise_for_status()
                data = response.json()

        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            logger.warning(
                "openrouter.http_error", status_code=status, model_name=model_name
            )
            if status == 429:
                raise ProviderTransientError(
                    "OpenRouter rate limit exceeded", details={"status_code": status}
                ) from e
            if status >= 500 or status in _TRANSIENT_STATUS_CODES:
                raise ProviderTransientError(
                    f"OpenRouter API error {status}", details={"status_code": status}
                ) from e
            raise ProviderError(
                f"OpenRouter API error {status}", details={"status_code": status}
            ) from e

        except httpx.TimeoutException as e:
            logger.warning("openrouter.timeout", model_name=model_name)
            raise ProviderTransientError("OpenRouter request timed out") from e

        except httpx.RequestError as e:
            logger.warning("openrouter.request_error", error=str(e))
            raise ProviderTransientError(f"OpenRouter request failed: {str(e)}") from e

        except ValueError as e:
            raise ProviderValidationError("OpenRouter returned invalid JSON") from e

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderValidationError(
                "OpenRouter response has no message content"
            ) from e

        if not isinstance(content, str):
            raise ProviderValidationError("OpenRouter message content is not text")
        return content
