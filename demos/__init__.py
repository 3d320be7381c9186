"""Runnable demonstrations of the localization pipeline on synthetic data."""

__all__ = []
