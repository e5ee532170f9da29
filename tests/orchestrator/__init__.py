"""
Tests for the orchestrator package.
"""
