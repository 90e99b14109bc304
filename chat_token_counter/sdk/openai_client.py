"""
OpenAI client wrapper for calibrating token predictions.

Predicts prompt tokens offline, then makes a minimal completion call and
compares the prediction with the usage the service reports.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

import structlog
from openai import OpenAI

from ..core.models import ChatMessage, FunctionSpec, function_to_dict, message_to_dict
from ..core.token_counter import TokenCounter

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class TokenCountCheck:
    """Predicted versus reported prompt tokens for one request."""
    model: str
    predicted: int
    actual: int

    @property
    def difference(self) -> int:
        """Reported minus predicted tokens."""
        return self.actual - self.predicted

    @property
    def matches(self) -> bool:
        return self.difference == 0


class TokenCheckingOpenAI:
    """Checks offline token counts against the OpenAI API.

    Each check costs one single-token completion, so use it to calibrate,
    not on every request.
    """

    def __init__(
        self,
        model: str,
        client: Optional[OpenAI] = None,
        counter: Optional[TokenCounter] = None
    ):
        """Initialize checking client.

        Args:
            model: OpenAI model name (required)
            client: OpenAI client (defaults to one configured from the environment)
            counter: Token counter (defaults to the process-wide registry)

        Raises:
            ValueError: If model is missing/empty
        """
        if not model or not model.strip():
            raise ValueError("model is required and cannot be empty")

        self.model = model
        self.counter = counter or TokenCounter()
        # Unsupported models fail here, before any API call is made
        self.counter.classify(model)
        self.client = client or OpenAI()

    def check(
        self,
        messages: Sequence[ChatMessage],
        functions: Optional[Sequence[FunctionSpec]] = None,
        response_function_name: Optional[str] = None,
        **kwargs: Any
    ) -> TokenCountCheck:
        """Compare the predicted prompt tokens with the service's count.

        Args:
            messages: Chat messages (required)
            functions: Optional function specs
            response_function_name: Function the model is forced to call
            **kwargs: Additional OpenAI parameters

        Returns:
            TokenCountCheck with predicted and reported counts

        Raises:
            ValueError: If messages is empty or the response has no usage
            OpenAI API errors: Propagated without modification
        """
        if not messages:
            raise ValueError("messages is required and cannot be empty")

        predicted = self.counter.count_request(
            self.model, messages, functions, response_function_name
        )

        request: Dict[str, Any] = {
            "model": self.model,
            "messages": [message_to_dict(message) for message in messages],
            "temperature": 0.0,
            "max_tokens": 1,
        }
        if functions:
            request["functions"] = [function_to_dict(function) for function in functions]
        if response_function_name:
            request["function_call"] = {"name": response_function_name}
        request.update(kwargs)

        response = self.client.chat.completions.create(**request)

        usage = response.usage
        if not usage:
            raise ValueError("OpenAI response missing usage information")

        result = TokenCountCheck(
            model=self.model,
            predicted=predicted,
            actual=usage.prompt_tokens
        )
        if not result.matches:
            logger.warning(
                "prompt_token_mismatch",
                model=self.model,
                predicted=result.predicted,
                actual=result.actual
            )
        return result
