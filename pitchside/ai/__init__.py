"""
AI assisted session planning: model client and prompt builders.
"""

from .client import AIServiceError, invoke_claude, strip_code_fences

__all__ = ['AIServiceError', 'invoke_claude', 'strip_code_fences']
