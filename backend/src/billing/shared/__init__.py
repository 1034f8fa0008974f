"""Shared billing configuration, errors and helpers."""
