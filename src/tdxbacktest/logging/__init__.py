"""Logging helpers."""

from .logger import HumanLogger

__all__ = ["HumanLogger"]
