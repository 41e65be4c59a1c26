from abc import ABC, abstractmethod


class TextGenerator(ABC):
    """An external text-generation counterparty: prompt in, free-form text out."""

    model_tag: str

    @abstractmethod
    def generate(self, prompt: str) -> str:
        """Returns the generated text or raises on any failure."""

    def is_configured(self) -> bool:
        return True
