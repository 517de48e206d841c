"""
Test suite for commerce_i18n

Contains:
- tests/unit/          : Unit tests for individual modules
"""
