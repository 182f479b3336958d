"""
Shared constants for the Attribution Worker
"""
