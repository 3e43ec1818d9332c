"""
Enrollment notifier adapters.
"""
from .enrollment_notifier import CeleryEnrollmentNotifier, LoggingEnrollmentNotifier

__all__ = ["CeleryEnrollmentNotifier", "LoggingEnrollmentNotifier"]
