"""Utilities module.

This module provides shared exception classes and error categorization.
"""
