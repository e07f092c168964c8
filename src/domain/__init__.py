"""Ladder domain modules."""
