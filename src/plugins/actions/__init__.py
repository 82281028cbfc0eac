"""
Action plugins package.

Action plugins apply resource specs against a remote system (Seq API keys, ...)
"""

from plugins.actions.base import ActionPlugin

__all__ = ["ActionPlugin"]
