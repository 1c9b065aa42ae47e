from __future__ import annotations

import abc
import dataclasses
from collections.abc import Iterable

from app.domain.quiz.events import QuizEvent


class AggregateRoot(abc.ABC):
    """Event-sourced aggregate base.

    Every command that changes state bumps the version once and records one or
    more events under that version, numbered by a per-version sequence.
    """

    def __init__(self) -> None:
        self._version = 0
        self._uncommitted_events: list[QuizEvent] = []
        self._event_sequence = 1

    @property
    def version(self) -> int:
        return self._version

    def _increment_version(self) -> int:
        self._version += 1
        self._event_sequence = 1
        return self._version

    def _add_event(self, event: QuizEvent) -> None:
        if event.version != self._version:
            raise ValueError(f"Event version mismatch: expected {self._version}, got {event.version}")
        event = dataclasses.replace(event, event_sequence=self._event_sequence)
        self._event_sequence += 1
        self._uncommitted_events.append(event)

    def has_uncommitted_events(self) -> bool:
        return bool(self._uncommitted_events)

    @property
    def uncommitted_events(self) -> tuple[QuizEvent, ...]:
        return tuple(self._uncommitted_events)

    def pull_uncommitted_events(self) -> list[QuizEvent]:
        events = list(self._uncommitted_events)
        self._uncommitted_events = []
        return events

    def mark_changes_as_committed(self) -> None:
        self._uncommitted_events = []

    def get_expected_version(self) -> int:
        return self._version

    def load_from_history(self, events: Iterable[QuizEvent]) -> None:
        last_version = -1
        max_seq = 0
        for event in events:
            if event.version != last_version:
                last_version = event.version
                max_seq = 0
            max_seq = max(max_seq, event.event_sequence)
            self._apply(event)
            self._version = event.version

        self._event_sequence = max_seq + 1
        self.mark_changes_as_committed()

    @abc.abstractmethod
    def _apply(self, event: QuizEvent) -> None:
        raise NotImplementedError
