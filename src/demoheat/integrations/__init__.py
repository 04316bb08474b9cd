"""
demoheat Integrations - External service adapters.

This module contains:
- faceit: FACEIT Data API client and expected-match extraction
"""

__all__: list[str] = []
