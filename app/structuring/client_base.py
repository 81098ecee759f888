from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ChatRequest:
    """One structuring call: prompts plus the JSON schema the answer must follow."""

    model: str
    system_prompt: str
    user_prompt: str
    json_schema: dict[str, object] = field(default_factory=dict)
    schema_name: str = "receipt_data"
    temperature: float = 0.0


class BaseStructuringClient(ABC):
    """Chat-model backend used by the receipt structurer."""

    @abstractmethod
    def complete(self, request: ChatRequest) -> str:
        """Return the model's JSON answer as text."""
