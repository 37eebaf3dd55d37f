"""
Stratikey authorization and workflow-state core.

Permission matrix, organization context resolution, request
authorization and content approval for the multi-tenant marketing/CRM
platform.
"""

__version__ = "1.0.0"
