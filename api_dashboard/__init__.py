"""Operational dashboard for backend API resource health and roadmap projects."""

__version__ = "0.1.0"
