# campus_hub/forms/__init__.py
"""
WTForms package
"""

from .event import EventSubmissionForm

__all__ = ["EventSubmissionForm"]
