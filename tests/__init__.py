"""
Marketgate test suite.

This package contains tests for the Marketgate engine:
- Account gate and ownership guard tests
- Policy system tests
- Lifecycle, moderation and featuring tests
- Storage and click tracking tests
- Claims, configuration and audit tests
"""
