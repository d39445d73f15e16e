import time
from typing import AbstractSet, Callable, Optional, Tuple

from .config import Settings, settings as default_settings
from .exceptions import TaskNotFoundError, TaskTimeoutError
from .logging import jlog
from .schemas import TaskDescriptor, TaskEntry, TaskList, TaskOutcome, TaskState

# Fetches GET /api/task, filtered by task name
TaskFetcher = Callable[[str], TaskList]

# The API has no task ids; begin and end time tell finished runs apart
EntryKey = Tuple[Optional[str], Optional[str]]


def entry_key(entry: TaskEntry) -> EntryKey:
    return entry.begin_time, entry.end_time


def classify(tasks: TaskList, descriptor: TaskDescriptor, stale: AbstractSet[EntryKey] = frozenset()) -> TaskOutcome:
    """
    Classify one snapshot of the task list for `descriptor`.

    A running match wins over finished ones, and finished entries listed in
    `stale` (runs of earlier attempts of the same operation) are skipped.
    Among the remaining finished matches the one that ended last counts. No
    match at all is PENDING, the task may not be registered yet.
    """
    for entry in tasks.executing_tasks:
        if descriptor.matches(entry):
            return TaskOutcome(state=TaskState.PENDING, entry=entry)

    finished = [
        entry for entry in tasks.finished_tasks
        if descriptor.matches(entry) and entry_key(entry) not in stale
    ]
    if not finished:
        return TaskOutcome(state=TaskState.PENDING)

    latest = max(finished, key=lambda entry: entry.end_time or "")
    if latest.success:
        return TaskOutcome(state=TaskState.SUCCEEDED, entry=latest)
    return TaskOutcome(state=TaskState.FAILED, failure=latest.exception, entry=latest)


class TaskTracker:
    """Polls the task list until the task behind a descriptor is finished."""

    def __init__(self, fetch: TaskFetcher, settings: Optional[Settings] = None):
        settings = settings or default_settings
        self.fetch = fetch
        self.poll_interval_s = max(0.0, settings.task_poll_interval_s)
        self.max_cycles = max(1, settings.task_max_poll_cycles)

    def poll(self, descriptor: TaskDescriptor, stale: AbstractSet[EntryKey] = frozenset()) -> TaskOutcome:
        return classify(self.fetch(descriptor.name), descriptor, stale)

    def wait_for_completion(self, descriptor: TaskDescriptor, stale: AbstractSet[EntryKey] = frozenset()) -> TaskOutcome:
        seen = False
        for cycle in range(1, self.max_cycles + 1):
            outcome = self.poll(descriptor, stale)
            jlog(
                event="task_poll",
                severity="DEBUG",
                task=descriptor.name,
                resource_spec=descriptor.resource_spec,
                cycle=cycle,
                state=outcome.state.value,
            )
            if outcome.is_terminal:
                return outcome
            seen = seen or outcome.entry is not None
            if cycle < self.max_cycles:
                time.sleep(self.poll_interval_s)

        if seen:
            raise TaskTimeoutError(
                f"task {descriptor.name} ({descriptor.resource_spec or descriptor.image_name}) "
                f"still running after {self.max_cycles} poll(s)",
                task_name=descriptor.name,
                cycles=self.max_cycles,
            )
        raise TaskNotFoundError(
            f"task {descriptor.name} ({descriptor.resource_spec or descriptor.image_name}) "
            f"not found after {self.max_cycles} poll(s)",
            task_name=descriptor.name,
            cycles=self.max_cycles,
        )
