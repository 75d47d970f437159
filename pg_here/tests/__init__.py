"""
Tests for pg_here.
"""
