"""State machine behind the "host a new event" form."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, Protocol

from .config import settings
from .utils import split_tags

logger = logging.getLogger("uvicorn.error")

SUCCESS_MESSAGE = "Event created successfully!"
SUBMIT_FAILED_MESSAGE = "We couldn't create your event. Please try again."

REQUIRED_FIELDS: tuple[tuple[str, str], ...] = (
    ("title", "Event title is required"),
    ("date", "Event date is required"),
    ("time", "Event time is required"),
    ("location", "Event location is required"),
    ("tags", "At least one tag is required"),
    ("description", "Event description is required"),
)


class FormState(str, Enum):
    CLOSED = "closed"
    IDLE = "idle"
    VALIDATING = "validating"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    ERROR = "error"
    FAILED = "failed"


@dataclass
class NewEventDraft:
    title: str = ""
    date: str = ""
    time: str = ""
    location: str = ""
    tags: str = ""
    description: str = ""
    image: str = ""

    @classmethod
    def default(cls, image: str | None = None) -> NewEventDraft:
        return cls(image=settings.default_event_image if image is None else image)

    @classmethod
    def field_names(cls) -> tuple[str, ...]:
        return tuple(item.name for item in fields(cls))

    @property
    def tag_list(self) -> list[str]:
        return split_tags(self.tags)


@dataclass(frozen=True)
class Ok:
    pass


@dataclass(frozen=True)
class Err:
    reason: str


ValidationResult = Ok | Err


def validate(draft: NewEventDraft) -> ValidationResult:
    """Return the message for the first blank required field, in form order."""
    for name, message in REQUIRED_FIELDS:
        if not str(getattr(draft, name) or "").strip():
            return Err(message)
    return Ok()


class AuthGate(Protocol):
    def is_authenticated(self) -> bool: ...

    def request_sign_in(self) -> None: ...


EventCreator = Callable[[NewEventDraft], Awaitable[Any]]


class Toast:
    """Transient notification that dismisses itself after ``duration`` seconds.

    Showing a new message cancels the pending dismissal of the previous one so
    an old timer never hides a newer notification.
    """

    def __init__(self, duration: float | None = None) -> None:
        self.duration = settings.toast_seconds if duration is None else duration
        self.message: str | None = None
        self._handle: asyncio.TimerHandle | None = None

    @property
    def visible(self) -> bool:
        return self.message is not None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def show(self, message: str) -> None:
        self.cancel()
        self.message = message
        loop = asyncio.get_running_loop()
        self._handle = loop.call_later(self.duration, self.dismiss)

    def dismiss(self) -> None:
        self._handle = None
        self.message = None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class HostEventForm:
    """Controller for one host-event modal session.

    States run ``closed -> idle -> validating -> {error, submitting}`` and a
    submission ends in ``success -> closed`` or ``failed``. Both ``error`` and
    ``failed`` keep the draft so the user can fix it and submit again.
    """

    def __init__(
        self,
        auth: AuthGate,
        create_event: EventCreator,
        *,
        toast: Toast | None = None,
        default_image: str | None = None,
    ) -> None:
        self._auth = auth
        self._create_event = create_event
        self.toast = toast if toast is not None else Toast()
        self._default_image = default_image
        self._state = FormState.CLOSED
        self._observers: list[Callable[[FormState], None]] = []
        self._pending: asyncio.Future | None = None
        self._disposed = False
        self.draft = NewEventDraft.default(default_image)
        self.error: str | None = None
        self.created: Any = None

    @property
    def state(self) -> FormState:
        return self._state

    @property
    def is_open(self) -> bool:
        return self._state is not FormState.CLOSED

    def on_transition(self, callback: Callable[[FormState], None]) -> None:
        self._observers.append(callback)

    def _transition(self, state: FormState) -> None:
        self._state = state
        for callback in list(self._observers):
            callback(state)

    def _reset_draft(self) -> None:
        self.draft = NewEventDraft.default(self._default_image)

    def open(self) -> bool:
        """Open the form, or hand off to sign-in when nobody is signed in."""
        if not self._auth.is_authenticated():
            self._auth.request_sign_in()
            return False
        if self.is_open:
            return True
        self._reset_draft()
        self.error = None
        self._transition(FormState.IDLE)
        return True

    def update_field(self, name: str, value: str) -> None:
        if name not in NewEventDraft.field_names():
            raise KeyError(name)
        if not self.is_open:
            raise RuntimeError("Host form is not open")
        if self._state is FormState.SUBMITTING:
            return
        setattr(self.draft, name, value)
        self.error = None
        if self._state in (FormState.ERROR, FormState.FAILED):
            self._transition(FormState.IDLE)

    def update_fields(self, values: dict[str, str]) -> None:
        for name, value in values.items():
            self.update_field(name, value)

    async def submit(self) -> FormState:
        if self._state in (FormState.CLOSED, FormState.SUBMITTING):
            return self._state

        self._transition(FormState.VALIDATING)
        result = validate(self.draft)
        if isinstance(result, Err):
            self.error = result.reason
            self._transition(FormState.ERROR)
            return self._state

        self.error = None
        snapshot = replace(self.draft)
        self._transition(FormState.SUBMITTING)
        self._pending = asyncio.ensure_future(self._create_event(snapshot))
        try:
            self.created = await self._pending
        except asyncio.CancelledError:
            if self._disposed:
                return self._state
            # Cancelled by the caller: keep the draft and let the user retry.
            self._transition(FormState.IDLE)
            raise
        except Exception:
            logger.exception("Creating hosted event %r failed", snapshot.title)
            self.error = SUBMIT_FAILED_MESSAGE
            self._transition(FormState.FAILED)
            return self._state
        finally:
            self._pending = None

        self._transition(FormState.SUCCESS)
        self.toast.show(SUCCESS_MESSAGE)
        self._reset_draft()
        self._transition(FormState.CLOSED)
        return self._state

    def cancel(self) -> bool:
        """Discard the draft and close; refused while a submission is running."""
        if self._state is FormState.SUBMITTING:
            return False
        self._reset_draft()
        self.error = None
        if self._state is not FormState.CLOSED:
            self._transition(FormState.CLOSED)
        return True

    def dismiss_outside(self) -> bool:
        """Handle a pointer interaction outside the form's bounds."""
        return self.cancel()

    def dispose(self) -> None:
        """Tear down: abandon any in-flight submission and pending toast timer."""
        self._disposed = True
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self.toast.cancel()
        self.error = None
        if self._state is not FormState.CLOSED:
            self._transition(FormState.CLOSED)
