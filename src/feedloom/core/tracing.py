"""可观测性抽象.

采集管线只依赖 Tracer 接口：span、breadcrumb、异常上报以及计数器/仪表盘指标。
默认实现写入标准 logging，接入其他遥测后端时替换实现即可。
"""

import logging
import time
from abc import ABC, abstractmethod
from collections.abc import Iterator
from contextlib import AbstractContextManager, contextmanager
from typing import Any

telemetry_logger = logging.getLogger("feedloom.telemetry")


class Span(ABC):
    """一次被追踪的操作."""

    @abstractmethod
    def set_attribute(self, key: str, value: Any) -> None:
        """记录属性."""
        ...

    @abstractmethod
    def set_status(self, ok: bool, message: str = "") -> None:
        """记录结束状态."""
        ...


class Tracer(ABC):
    """追踪与指标接口."""

    @abstractmethod
    def start_span(
        self, op: str, name: str, attributes: dict[str, Any] | None = None
    ) -> AbstractContextManager[Span]:
        """开启一个 span（上下文管理器）."""
        ...

    @abstractmethod
    def add_breadcrumb(
        self, category: str, message: str, data: dict[str, Any] | None = None
    ) -> None:
        """记录面包屑."""
        ...

    @abstractmethod
    def capture_exception(
        self,
        error: BaseException,
        level: str = "error",
        tags: dict[str, str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        """上报异常."""
        ...

    @abstractmethod
    def emit_counter(
        self, name: str, value: int = 1, tags: dict[str, str] | None = None
    ) -> None:
        """计数器指标."""
        ...

    @abstractmethod
    def emit_gauge(
        self, name: str, value: float, tags: dict[str, str] | None = None
    ) -> None:
        """仪表盘指标."""
        ...


class LoggingSpan(Span):
    """把属性收集起来，结束时统一写日志."""

    def __init__(self, op: str, name: str, attributes: dict[str, Any] | None) -> None:
        self.op = op
        self.name = name
        self.attributes: dict[str, Any] = dict(attributes or {})
        self.ok = True
        self.message = ""

    def set_attribute(self, key: str, value: Any) -> None:
        self.attributes[key] = value

    def set_status(self, ok: bool, message: str = "") -> None:
        self.ok = ok
        self.message = message


class LoggingTracer(Tracer):
    """基于 logging 的默认实现."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or telemetry_logger

    @contextmanager
    def start_span(
        self, op: str, name: str, attributes: dict[str, Any] | None = None
    ) -> Iterator[Span]:
        span = LoggingSpan(op, name, attributes)
        started = time.perf_counter()
        try:
            yield span
        except BaseException:
            span.set_status(False, span.message or "exception")
            raise
        finally:
            duration_ms = (time.perf_counter() - started) * 1000
            self._logger.debug(
                f"span op={span.op} name={span.name} ok={span.ok} "
                f"message={span.message!r} duration_ms={duration_ms:.1f} "
                f"attributes={span.attributes}"
            )

    def add_breadcrumb(
        self, category: str, message: str, data: dict[str, Any] | None = None
    ) -> None:
        self._logger.debug(f"breadcrumb [{category}] {message} {data or {}}")

    def capture_exception(
        self,
        error: BaseException,
        level: str = "error",
        tags: dict[str, str] | None = None,
        extra: dict[str, Any] | None = None,
    ) -> None:
        log_level = logging.WARNING if level == "warning" else logging.ERROR
        self._logger.log(
            log_level,
            f"exception {type(error).__name__}: {error} tags={tags or {}} extra={extra or {}}",
        )

    def emit_counter(
        self, name: str, value: int = 1, tags: dict[str, str] | None = None
    ) -> None:
        self._logger.info(f"counter {name}={value} {tags or {}}")

    def emit_gauge(
        self, name: str, value: float, tags: dict[str, str] | None = None
    ) -> None:
        self._logger.info(f"gauge {name}={value} {tags or {}}")


_default_tracer: Tracer = LoggingTracer()


def get_tracer() -> Tracer:
    """获取默认 Tracer."""
    return _default_tracer
