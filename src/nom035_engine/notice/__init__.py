"""Confidentiality notice rendering."""

from .renderer import NoticeRenderer

__all__ = ["NoticeRenderer"]
