"""
外部API客户端
"""
from .enrollment_status import HttpEnrollmentStatusSource

__all__ = ["HttpEnrollmentStatusSource"]
