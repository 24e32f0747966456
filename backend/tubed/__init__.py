"""Tubed - personal image and file hosting service."""

__version__ = "1.0.0"
