"""Dependency injection container."""

from dataclasses import dataclass
from typing import TypeVar, Generic, Callable, Optional, Any

from taskcore.clock import Clock, SystemClock
from taskcore.domain.protocols import AuditLog, Notifier, UnitOfWork


T = TypeVar("T")


class Provider(Generic[T]):
    """Lazy provider that creates instance on first access."""

    def __init__(self, factory: Callable[[], T]) -> None:
        self._factory = factory
        self._instance: Optional[T] = None

    def get(self) -> T:
        """Get the instance, creating it if necessary."""
        if self._instance is None:
            self._instance = self._factory()
        return self._instance

    def reset(self) -> None:
        """Reset the instance (for testing)."""
        self._instance = None

    def override(self, instance: T) -> None:
        """Override with a specific instance (for testing)."""
        self._instance = instance


@dataclass
class Container:
    """Dependency injection container."""

    _unit_of_work: Optional[Provider[UnitOfWork]] = None
    _notifier: Optional[Provider[Notifier]] = None
    _audit_log: Optional[Provider[AuditLog]] = None
    _clock: Optional[Provider[Clock]] = None
    _event_bus: Optional[Provider[Any]] = None

    # Settings cache
    _settings: Optional[Any] = None

    @property
    def unit_of_work(self) -> UnitOfWork:
        """Get the unit of work."""
        if self._unit_of_work is None:
            raise RuntimeError("Unit of work not configured")
        return self._unit_of_work.get()

    @property
    def notifier(self) -> Notifier:
        """Get the notifier."""
        if self._notifier is None:
            raise RuntimeError("Notifier not configured")
        return self._notifier.get()

    @property
    def audit_log(self) -> AuditLog:
        """Get the audit log."""
        if self._audit_log is None:
            raise RuntimeError("Audit log not configured")
        return self._audit_log.get()

    @property
    def clock(self) -> Clock:
        """Get the clock, defaulting to the system clock."""
        if self._clock is None:
            self._clock = Provider(SystemClock)
        return self._clock.get()

    @property
    def event_bus(self) -> Any:
        """Get the EventBus, built from ``build_registry()`` on first use."""
        if self._event_bus is None:
            self._event_bus = Provider(self._build_event_bus)
        return self._event_bus.get()

    @property
    def create_task_handler(self) -> Any:
        """Get CreateTaskHandler instance."""
        from taskcore.commands.handlers import CreateTaskHandler

        return CreateTaskHandler(self.unit_of_work, self.event_bus, self.clock)

    @property
    def complete_task_handler(self) -> Any:
        """Get CompleteTaskHandler instance."""
        from taskcore.commands.handlers import CompleteTaskHandler

        return CompleteTaskHandler(self.unit_of_work, self.event_bus, self.clock)

    @property
    def change_task_status_handler(self) -> Any:
        """Get ChangeTaskStatusHandler instance."""
        from taskcore.commands.handlers import ChangeTaskStatusHandler

        return ChangeTaskStatusHandler(self.unit_of_work, self.event_bus, self.clock)

    @property
    def assign_task_handler(self) -> Any:
        """Get AssignTaskHandler instance."""
        from taskcore.commands.handlers import AssignTaskHandler

        return AssignTaskHandler(self.unit_of_work, self.event_bus, self.clock)

    @property
    def add_comment_handler(self) -> Any:
        """Get AddCommentHandler instance."""
        from taskcore.commands.handlers import AddCommentHandler

        return AddCommentHandler(self.unit_of_work, self.event_bus, self.clock)

    @property
    def update_comment_handler(self) -> Any:
        """Get UpdateCommentHandler instance."""
        from taskcore.commands.handlers import UpdateCommentHandler

        return UpdateCommentHandler(self.unit_of_work, self.event_bus, self.clock)

    @property
    def remove_comment_handler(self) -> Any:
        """Get RemoveCommentHandler instance."""
        from taskcore.commands.handlers import RemoveCommentHandler

        return RemoveCommentHandler(self.unit_of_work, self.event_bus, self.clock)

    @property
    def settings(self) -> Any:
        """Get application settings."""
        if self._settings is None:
            from taskcore.config.settings import get_settings

            self._settings = get_settings()
        return self._settings

    def build_registry(self) -> Any:
        """Wire every event reaction, in the order it should run."""
        from taskcore.domain.events import (
            CommentAdded,
            TaskAssigned,
            TaskCompleted,
            TaskCreated,
            TaskStatusChanged,
        )
        from taskcore.events.bus import HandlerRegistry
        from taskcore.events.handlers import (
            AuditTrailHandler,
            EventLoggingHandler,
            NotifyAssigneeOnTaskAssigned,
            NotifyAssigneeOnTaskCreated,
            NotifyCreatorOnTaskCompleted,
            NotifyParticipantsOnCommentAdded,
            NotifyParticipantsOnStatusChanged,
        )

        uow, notifier = self.unit_of_work, self.notifier
        registry = HandlerRegistry()
        registry.register_for_all(EventLoggingHandler())
        registry.register_for_all(AuditTrailHandler(self.audit_log, self.clock))
        registry.register(TaskCreated, NotifyAssigneeOnTaskCreated(uow, notifier))
        registry.register(TaskAssigned, NotifyAssigneeOnTaskAssigned(uow, notifier))
        registry.register(TaskCompleted, NotifyCreatorOnTaskCompleted(uow, notifier))
        registry.register(
            TaskStatusChanged, NotifyParticipantsOnStatusChanged(uow, notifier)
        )
        registry.register(CommentAdded, NotifyParticipantsOnCommentAdded(uow, notifier))
        return registry

    def _build_event_bus(self) -> Any:
        from taskcore.events.bus import EventBus

        dispatch = self.settings.dispatch
        return EventBus(
            self.build_registry(),
            max_attempts=dispatch.max_attempts,
            retry_delay=dispatch.retry_delay_seconds,
            clock=self.clock,
        )

    def configure_unit_of_work(
        self, factory: Callable[[], UnitOfWork]
    ) -> "Container":
        """Configure the unit of work."""
        self._unit_of_work = Provider(factory)
        return self

    def configure_notifier(self, factory: Callable[[], Notifier]) -> "Container":
        """Configure the notifier."""
        self._notifier = Provider(factory)
        return self

    def configure_audit_log(self, factory: Callable[[], AuditLog]) -> "Container":
        """Configure the audit log."""
        self._audit_log = Provider(factory)
        return self

    def configure_clock(self, factory: Callable[[], Clock]) -> "Container":
        """Configure the clock."""
        self._clock = Provider(factory)
        return self

    def configure_event_bus(self, factory: Callable[[], Any]) -> "Container":
        """Replace the event bus, e.g. with a queue-backed publisher."""
        self._event_bus = Provider(factory)
        return self

    def reset(self) -> None:
        """Reset all providers (for testing)."""
        for provider in (
            self._unit_of_work,
            self._notifier,
            self._audit_log,
            self._clock,
            self._event_bus,
        ):
            if provider:
                provider.reset()
        self._event_bus = None
        self._settings = None


# Global container instance
container = Container()


def get_container() -> Container:
    """Get the global container instance."""
    return container


def reset_container() -> None:
    """Reset the global container (for testing)."""
    global container
    container.reset()
    container = Container()
