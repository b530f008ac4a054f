from crewdesk.core.config import settings
from crewdesk.platform.ports.event_bus import EventBusPort
from crewdesk.platform.adapters.bus_noop import NoopEventBus

class ProviderRegistry:
    _event_bus: EventBusPort | None = None

    @classmethod
    def event_bus(cls) -> EventBusPort:
        if cls._event_bus is None:
            prov = (settings.EVENT_BUS_PROVIDER or "noop").lower()
            if prov == "redis":
                from crewdesk.platform.adapters.bus_redis import RedisEventBus
                cls._event_bus = RedisEventBus()
            else:
                cls._event_bus = NoopEventBus()
        return cls._event_bus

    @classmethod
    def reset(cls) -> None:
        cls._event_bus = None

registry = ProviderRegistry()
