"""
Tests for the record_store package.
"""
