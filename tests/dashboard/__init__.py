"""
Tests for the dashboard package.
"""
