"""Shared utilities for Judgementals."""
