"""Fake collaborators shared across tests."""

from collections.abc import Callable, Sequence

from src.chat.models import Message
from src.llm.models import ModelRequestConfig
from src.memory.models import Memory
from src.memory.storage import LocalVectorStorage


class FakeProvider:
    """Chat provider that replays scripted replies or computes them."""

    def __init__(
        self,
        replies: Sequence[str] = (),
        *,
        respond: Callable[[str | None, list[Message]], str] | None = None,
        error: Exception | None = None,
        name: str = "fake",
    ) -> None:
        self._replies = list(replies)
        self._respond = respond
        self._error = error
        self._name = name
        self.calls: list[tuple[ModelRequestConfig, list[Message], str | None]] = []

    @property
    def name(self) -> str:
        return self._name

    def set_api_key(self, api_key: str) -> None:
        pass

    async def send_message(self, config, messages, system_prompt=None) -> str:
        self.calls.append((config, list(messages), system_prompt))
        if self._error is not None:
            raise self._error
        if self._respond is not None:
            return self._respond(system_prompt, list(messages))
        return self._replies.pop(0) if self._replies else ""


class FakeProviderResolver:
    """Routes every model id to the same provider."""

    def __init__(self, provider: FakeProvider) -> None:
        self.provider = provider
        self.requested: list[str] = []

    def get_provider_for_model(self, model_id: str) -> FakeProvider:
        self.requested.append(model_id)
        return self.provider


class FakeVectorProvider:
    """Deterministic embeddings keyed on text; optional failure predicate."""

    def __init__(self, fail_on: Callable[[str], bool] | None = None) -> None:
        self._fail_on = fail_on
        self.embedded: list[str] = []

    def set_api_key(self, api_key: str) -> None:
        pass

    async def get_embedding(self, text: str, model: str) -> list[float]:
        self.embedded.append(text)
        if self._fail_on is not None and self._fail_on(text):
            msg = f"embedding failed for {text!r}"
            raise RuntimeError(msg)
        return [float(len(text)), 1.0, float(sum(map(ord, text)) % 7)]


class FakeVectorResolver:
    def __init__(self, provider: FakeVectorProvider) -> None:
        self.provider = provider

    def get_provider_for_model(self, model_id: str) -> FakeVectorProvider:
        return self.provider


class FailingStorage(LocalVectorStorage):
    """Local storage whose writes and searches always raise."""

    async def store_memory(self, content, embedding) -> None:
        msg = "storage down"
        raise ConnectionError(msg)

    async def search_similar(self, embedding, top_k=5, threshold=0.7) -> list[Memory]:
        msg = "storage down"
        raise ConnectionError(msg)


class RecordingStorage(LocalVectorStorage):
    """Local storage that records every URL it is pointed at."""

    def __init__(self) -> None:
        super().__init__()
        self.urls: list[str] = []

    def set_url(self, url: str) -> None:
        self.urls.append(url)


def make_messages(count: int, *, memorized: bool = False) -> list[Message]:
    """Alternating user/assistant messages."""
    return [
        Message(content=f"message {i}", is_user=i % 2 == 0, is_memorized=memorized)
        for i in range(count)
    ]


