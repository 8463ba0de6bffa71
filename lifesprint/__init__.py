"""
LifeSprint - hierarchical activities planned into annual, monthly,
weekly and daily backlogs.
"""

__version__ = "1.0.0"
