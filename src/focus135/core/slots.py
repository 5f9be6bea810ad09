# src/focus135/core/slots.py

from __future__ import annotations

"""
Slot allocator for the 1-3-5 rule.

Decides whether a task may join today's list given the current occupancy.
Occupancy is always computed from one snapshot of today's tasks, then the decision
is made, then a new Task value is returned. Nothing is mutated in place.
"""

import logging
from collections import Counter
from collections.abc import Iterable
from dataclasses import replace

from .models import DEFAULT_SIZES, SizeTable, Task, TaskSize

logger = logging.getLogger(__name__)


class SlotFull(Exception):
    """Today's capacity for this size is used up."""

    def __init__(self, size: TaskSize, capacity: int) -> None:
        super().__init__(f"today's {size.value} slots are full ({capacity}/{capacity})")
        self.size = size
        self.capacity = capacity


class QuickTaskNotSlotted(ValueError):
    """Quick tasks live in the quick list and never take a slot."""


def occupancy(today_tasks: Iterable[Task], sizes: SizeTable = DEFAULT_SIZES) -> Counter[TaskSize]:
    """Count today's incomplete tasks per slotted size."""
    counts: Counter[TaskSize] = Counter()
    for t in today_tasks:
        if not t.is_today or t.completed:
            continue
        if sizes.capacity_for(t.size) is None:
            continue
        counts[t.size] += 1
    return counts


def free_slots(today_tasks: Iterable[Task], sizes: SizeTable = DEFAULT_SIZES) -> dict[TaskSize, int]:
    used = occupancy(today_tasks, sizes)
    return {size: max(0, cap - used[size]) for size, cap in sizes.capacity.items()}


def energy_percent(today_tasks: Iterable[Task], sizes: SizeTable = DEFAULT_SIZES) -> int:
    """Share of the day's slots in use, 0..100."""
    total = sizes.total_slots
    if total <= 0:
        return 0
    used = sum(occupancy(today_tasks, sizes).values())
    return round(used / total * 100)


def try_mark_today(
    task: Task,
    today_tasks: Iterable[Task],
    sizes: SizeTable = DEFAULT_SIZES,
) -> Task:
    """
    Return `task` flagged for today, or raise SlotFull.

    - quick tasks -> QuickTaskNotSlotted
    - completed tasks -> ValueError
    - already on today's list -> returned unchanged, no capacity check
    """
    if task.is_quick:
        raise QuickTaskNotSlotted(f"quick task {task.id} cannot take a slot")
    if task.completed:
        raise ValueError(f"task {task.id} is already completed")
    if task.is_today:
        return task

    capacity = sizes.capacity_for(task.size)
    if capacity is None:
        raise QuickTaskNotSlotted(f"size {task.size.value} has no slots")

    used = occupancy(today_tasks, sizes)[task.size]
    if used >= capacity:
        logger.debug("Slot full size=%s used=%s capacity=%s task=%s", task.size.value, used, capacity, task.id)
        raise SlotFull(task.size, capacity)

    return replace(task, is_today=True)


def unmark_today(task: Task) -> Task:
    """Release the slot. No capacity check; a no-op when already released."""
    if not task.is_today:
        return task
    return replace(task, is_today=False)


def toggle_today(
    task: Task,
    today_tasks: Iterable[Task],
    sizes: SizeTable = DEFAULT_SIZES,
) -> Task:
    if task.is_today:
        return unmark_today(task)
    return try_mark_today(task, today_tasks, sizes)


def release_overflow(tasks: Iterable[Task], sizes: SizeTable = DEFAULT_SIZES) -> tuple[Task, ...]:
    """
    Enforce capacity on data that did not go through try_mark_today (imports, stored state).

    The first `capacity` open today-tasks of each size keep their slot, in the given
    order; later ones are released. Order of the returned tasks is unchanged.
    """
    used: Counter[TaskSize] = Counter()
    out: list[Task] = []
    released = 0
    for t in tasks:
        capacity = sizes.capacity_for(t.size)
        if t.is_today and not t.completed and capacity is not None:
            if used[t.size] >= capacity:
                t = replace(t, is_today=False)
                released += 1
            else:
                used[t.size] += 1
        out.append(t)
    if released:
        logger.warning("Released %d today-task(s) over capacity", released)
    return tuple(out)
