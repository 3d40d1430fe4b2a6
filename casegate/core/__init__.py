"""Core application components.

This module provides the foundational components for the casegate gateway:
- Application settings and configuration
- Logging setup shared by every domain
"""
