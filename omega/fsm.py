"""
Generic event-driven state machine.

Workflows are declared as data: a mapping of state names to ``State``
definitions (optional hooks plus an event table) and a context object owned
by the machine. ``StateMachine.send_event`` is the only way to change the
machine; an entry action may return a follow-up event, which is processed in
the same call so that a chain of internal transitions completes atomically.
"""

import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Optional, Tuple, TypeVar

from .logging_config import get_logger

StateType = str
EventType = str

# Initial state of every machine.
DEFAULT: StateType = ""
# Follow-up event that ends a cascade.
NO_OP: EventType = "NoOp"

C = TypeVar("C")


class StateMachineError(Exception):
    """Base exception for state machine errors."""


class EventRejected(StateMachineError):
    """Raised when the current state does not handle the event."""

    def __init__(self, state: StateType, event: EventType):
        super().__init__(f"event rejected: {event!r} in state {state!r}")
        self.state = state
        self.event = event


class ConfigurationError(StateMachineError):
    """Raised when a transition targets a state missing from the configuration."""


@dataclass(frozen=True)
class Event:
    """An event and its payload."""

    type: EventType
    context: Any = None


NO_OP_EVENT = Event(NO_OP)

Action = Callable[[Any, Event], None]
EntryAction = Callable[[Any, Event], Tuple[Any, Event]]
PreEntryHook = Callable[[Any, Event], Any]


@dataclass
class State:
    """
    Behaviour of a single state.

    Attributes:
        action: Runs on entry; cannot change the context or emit an event
        entry_action: Runs on entry; returns the new context and a follow-up event
        pre_entry_hook: Runs on every transition into this state, before
            ``current`` changes and before the entry action; returns the new context
        events: Event types handled in this state and the state each leads to
    """

    action: Optional[Action] = None
    entry_action: Optional[EntryAction] = None
    pre_entry_hook: Optional[PreEntryHook] = None
    events: Dict[EventType, StateType] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.action is not None and self.entry_action is not None:
            raise ValueError("A state can define either an action or an entry action, not both")


class StateMachine(Generic[C]):
    """State machine holding a typed context."""

    def __init__(self, states: Dict[StateType, State], context: C, name: str = "fsm"):
        """
        Initialize the state machine in the DEFAULT state.

        Args:
            states: Configuration of every state
            context: Initial workflow context
            name: Name used in log messages
        """
        self.states = states
        self.context = context
        self.name = name
        self.previous: StateType = DEFAULT
        self.current: StateType = DEFAULT
        self._lock = threading.Lock()
        self._logger = get_logger(f"{__name__}.{name}")

    def _next_state(self, event_type: EventType) -> StateType:
        state = self.states.get(self.current)
        if state is None or not state.events:
            raise EventRejected(self.current, event_type)

        target = state.events.get(event_type)
        if target is None:
            raise EventRejected(self.current, event_type)

        return target

    def can_handle(self, event_type: EventType) -> bool:
        """Return True if the current state has a transition for the event."""
        state = self.states.get(self.current)
        return state is not None and event_type in state.events

    def send_event(self, event: Event) -> None:
        """
        Process an event and any follow-up events it triggers.

        Args:
            event: Event to process

        Raises:
            EventRejected: If the current state does not handle the event
            ConfigurationError: If the target state is not configured
        """
        with self._lock:
            while True:
                target = self._next_state(event.type)

                state = self.states.get(target)
                if state is None:
                    raise ConfigurationError(
                        f"{self.name}: state {target!r} is not configured "
                        f"(event {event.type!r} from {self.current!r})"
                    )

                if state.pre_entry_hook is not None:
                    self.context = state.pre_entry_hook(self.context, event)

                self.previous = self.current
                self.current = target
                self._logger.debug(f"{self.name}: {self.previous or 'Default'} --{event.type}--> {target}")

                next_event = NO_OP_EVENT
                if state.entry_action is not None:
                    self.context, next_event = state.entry_action(self.context, event)
                elif state.action is not None:
                    state.action(self.context, event)

                if next_event is None or next_event.type == NO_OP:
                    return

                event = next_event
