"""
Test suite for Inventory Analytics.
"""
