"""
TaskFlow temporal engine.

Time-dependent state for a task and time-tracking workspace: due-date
urgency, deadline buckets, the durable running timer, weekly timesheets and
notification counters.
"""

__version__ = "0.1.0"
