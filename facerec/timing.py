"""
Nested wall-clock timers.

timing_push / timing_pop bracket a named stage; finished stages are kept in
order with their nesting depth so timing_print can show a small report.
"""

import time
from contextlib import contextmanager

_stack = []
_records = []


def timing_push(name):
    _stack.append((name, time.perf_counter()))


def timing_pop():
    """Close the innermost stage and return its duration in seconds."""
    name, start = _stack.pop()
    duration = time.perf_counter() - start
    _records.append((len(_stack), name, duration))
    return duration


def timing_records():
    return list(_records)


def timing_clear():
    _stack.clear()
    _records.clear()


def timing_print():
    print("Timing")
    for depth, name, duration in _records:
        print(f"  {'  ' * depth}{name:<30} {duration:10.3f} s")


@contextmanager
def timed(name):
    """Time the enclosed block as a stage called name."""
    timing_push(name)
    try:
        yield
    finally:
        timing_pop()
