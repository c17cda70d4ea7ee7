"""
SchoolGuard
Role/resource/action/scope authorization service for school administration
"""

__version__ = "1.0.0"
