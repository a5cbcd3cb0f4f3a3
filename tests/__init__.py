"""
Test suite for the booking application.
"""
