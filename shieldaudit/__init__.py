"""
SiteShield coverage audit - core modules
"""

__version__ = "1.0"
__author__ = "Edge Security Team"

__all__ = ['AuditRunner', 'AuditReport']

from .auditor.runner import AuditReport, AuditRunner
