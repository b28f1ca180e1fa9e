"""Shared series primitives and statistical helpers for the analytics engine."""
