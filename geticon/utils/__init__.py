"""Shared utilities for geticon."""
