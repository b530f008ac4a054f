from typing import Protocol, runtime_checkable

@runtime_checkable
class EventBusPort(Protocol):
    """Where outbox rows go once their transaction has committed."""

    async def publish(self, topic: str, key: str, value: dict, headers: dict | None = None) -> None: ...

    async def close(self) -> None: ...
