"""
focus135: a 1-3-5 day planner.

At most 1 large, 3 medium and 5 small tasks can be on today's list, picked from
deadline-bound projects and reset every evening.
"""

__version__ = "0.1.0"
