"""Core application components.

This module provides the foundational components for the CRM Access API:
- Database engine and session management via SQLAlchemy
- Application settings and configuration
"""
