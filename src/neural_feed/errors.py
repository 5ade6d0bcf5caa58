from __future__ import annotations


class NeuralFeedError(Exception):
    """Base class for errors raised by the curation pipeline."""


class InvalidNameError(NeuralFeedError):
    def __init__(self, message: str = "Name is required.") -> None:
        super().__init__(message)


class ConfirmationRequiredError(NeuralFeedError):
    def __init__(self, message: str = "Candidate confirmation is required.") -> None:
        super().__init__(message)


class LLMUnavailableError(NeuralFeedError):
    def __init__(self, message: str = "No language model configured.") -> None:
        super().__init__(message)


class LLMResponseError(NeuralFeedError):
    """Model output did not contain a JSON object matching the expected schema."""
