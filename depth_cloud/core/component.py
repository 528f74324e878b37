"""
Minimal host interface for pipeline components.

A component owns named input and output streams, typed properties and
handlers. A handler becomes ready once every input it depends on carries a
value published since the handler last ran. Input streams keep only the
newest value.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..exceptions import ComponentError, StreamEmptyError

logger = logging.getLogger(__name__)


class DataSource(ABC):
    @abstractmethod
    def read(self) -> Any:
        """Return the most recently published value"""


class DataSink(ABC):
    @abstractmethod
    def write(self, value: Any) -> None:
        """Publish a value"""


class DataStreamIn(DataSource, DataSink):
    """Input slot buffering only the newest value"""

    def __init__(self, name: str = ""):
        self.name = name
        self._value = None
        self._has_value = False
        self.fresh = False

    def write(self, value: Any) -> None:
        self._value = value
        self._has_value = True
        self.fresh = True

    def read(self) -> Any:
        if not self._has_value:
            raise StreamEmptyError(self.name)
        return self._value

    @property
    def has_data(self) -> bool:
        return self._has_value

    def consume(self) -> None:
        self.fresh = False


class DataStreamOut(DataSink):
    """Output slot forwarding every value to its connected sinks"""

    def __init__(self, name: str = ""):
        self.name = name
        self.last = None
        self.write_count = 0
        self._sinks: List[DataSink] = []

    def connect(self, sink: DataSink) -> None:
        self._sinks.append(sink)

    def write(self, value: Any) -> None:
        self.last = value
        self.write_count += 1
        for sink in self._sinks:
            sink.write(value)


class StreamRecorder(DataSink):
    """Sink keeping every value written to it"""

    def __init__(self):
        self.values: List[Any] = []

    def write(self, value: Any) -> None:
        self.values.append(value)

    @property
    def last(self) -> Any:
        return self.values[-1] if self.values else None


class Property:
    def __init__(self, name: str, default: Any):
        self.name = name
        self.default = default
        self.value = default

    def set(self, value: Any) -> None:
        """Set the value, coercing it to the type of the default"""
        kind = type(self.default)
        if kind is bool and isinstance(value, str):
            value = value.strip().lower() in ("1", "true", "yes", "on")
        elif self.default is not None and not isinstance(value, kind):
            value = kind(value)
        self.value = value

    def __bool__(self) -> bool:
        return bool(self.value)


class Component:
    """Base class for pipeline components.

    Subclasses register their streams, properties and handlers in
    ``prepare_interface``. ``dispatch`` plays the part of the host scheduler.
    """

    def __init__(self, name: str, handlers: Optional[Iterable[str]] = None):
        self.name = name
        self.streams: Dict[str, Any] = {}
        self.properties: Dict[str, Property] = {}
        self._handlers: Dict[str, Callable[[], None]] = {}
        self._dependencies: Dict[str, List[DataStreamIn]] = {}
        self.running = False
        self.prepare_interface()

        self.enabled_handlers = list(self._handlers) if handlers is None else list(handlers)
        for handler in self.enabled_handlers:
            if handler not in self._handlers:
                raise ComponentError(f"{self.name}: unknown handler '{handler}'")

    def prepare_interface(self) -> None:
        raise NotImplementedError

    def register_stream(self, name: str, stream):
        stream.name = name
        self.streams[name] = stream
        return stream

    def register_property(self, prop: Property) -> Property:
        self.properties[prop.name] = prop
        return prop

    def register_handler(self, name: str, handler: Callable[[], None]) -> None:
        self._handlers[name] = handler
        self._dependencies[name] = []

    def add_dependency(self, handler: str, stream: DataStreamIn) -> None:
        if handler not in self._handlers:
            raise ComponentError(f"{self.name}: unknown handler '{handler}'")
        self._dependencies[handler].append(stream)

    def stream(self, name: str):
        try:
            return self.streams[name]
        except KeyError:
            raise ComponentError(f"{self.name}: unknown stream '{name}'") from None

    def set_property(self, name: str, value: Any) -> None:
        try:
            self.properties[name].set(value)
        except KeyError:
            raise ComponentError(f"{self.name}: unknown property '{name}'") from None

    @property
    def handlers(self) -> List[str]:
        return list(self._handlers)

    def dependencies(self, handler: str) -> List[str]:
        return [stream.name for stream in self._dependencies[handler]]

    def ready_handlers(self) -> List[str]:
        return [
            name for name in self.enabled_handlers
            if all(stream.fresh for stream in self._dependencies[name])
        ]

    def run_handler(self, name: str) -> None:
        if name not in self._handlers:
            raise ComponentError(f"{self.name}: unknown handler '{name}'")
        logger.debug("%s::%s", self.name, name)
        self._handlers[name]()

    def dispatch(self) -> List[str]:
        """Run every ready handler, marking its inputs consumed even if it raises"""
        ready = self.ready_handlers()
        for name in ready:
            try:
                self.run_handler(name)
            finally:
                for stream in self._dependencies[name]:
                    stream.consume()
        return ready

    # Lifecycle
    def initialize(self) -> bool:
        return self.on_init()

    def start(self) -> bool:
        self.running = self.on_start()
        return self.running

    def stop(self) -> bool:
        stopped = self.on_stop()
        if stopped:
            self.running = False
        return stopped

    def finish(self) -> bool:
        return self.on_finish()

    def on_init(self) -> bool:
        return True

    def on_start(self) -> bool:
        return True

    def on_stop(self) -> bool:
        return True

    def on_finish(self) -> bool:
        return True


def connect(output: DataStreamOut, sink: DataSink) -> None:
    output.connect(sink)
