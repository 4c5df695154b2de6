"""
Integration test modules

Tests for the DocuSign envelope adapter, API client and bootstrap.
"""
