"""
KiraQuest - Gamified micro-lesson delivery.

Packages:
- schemas: Pydantic models for lessons, sessions and progress
- classroom: progression engine, scoring, persistence, service
- viewer: block renderers and the dynamic dispatcher
- utils: lesson page loading
"""

__version__ = "0.1.0"
