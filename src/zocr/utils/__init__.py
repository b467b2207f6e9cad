"""
Utility modules.

Submodules:
- logging: Logging configuration
"""
