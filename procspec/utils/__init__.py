"""Utility functions and classes for procspec."""

from procspec.utils import logging

__all__ = ("logging",)
