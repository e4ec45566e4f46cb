"""
Campus Hub: campus events directory with saved-event reminders, a retention
sweep and a storage reconciler.
"""

__version__ = "1.0.0"
