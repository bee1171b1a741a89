"""Utility modules."""

from mssqlkit.utils import logging

__all__ = ("logging",)
