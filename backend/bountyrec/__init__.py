"""Bounty recommendation and behavior-blending engine."""

__version__ = "0.1.0"
