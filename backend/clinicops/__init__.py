"""Clinic operations backend: booking reservation and conflict resolution engine."""

__version__ = "1.0.0"
