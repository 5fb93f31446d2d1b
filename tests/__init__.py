"""
Test suite for unitcore

Contains:
- tests/unit/          : Unit tests for individual modules
"""
