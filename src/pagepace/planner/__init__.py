"""Reading planner: schedule engine, plan storage, and CLI."""

__version__ = "0.1.0"
