"""AI prediction provider gateway interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from prediction_pipeline.domain.entities.prediction import PredictionPrompt


class IPredictionProviderGateway(ABC):
    """Sends prompts to a hosted language model."""

    @abstractmethod
    async def complete(self, model_name: str, prompt: PredictionPrompt) -> str:
        """Return the raw text produced by the model.

        Raises:
            ProviderTransientError: Rate limits, 5xx responses, transport
                failures.
            ProviderError: Any other non-success response.
        """
        raise NotImplementedError
