"""
Tests for the health analytics export pipeline.
"""
