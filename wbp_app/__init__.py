"""
Work Before Play - time-gated access controller

Keeps a shared Locked/Unlocked gate that opens for a fixed duration after
the user finishes a task and closes again on its own. A background
controller and short-lived front-end views coordinate only through a
persisted key-value store and a request/response message channel.
"""

__version__ = "0.1.0"
__author__ = "Work Before Play Team"
