"""Multichat command-line interface."""
