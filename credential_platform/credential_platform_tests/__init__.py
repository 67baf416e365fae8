"""
Tests for the credential_service package.
"""
