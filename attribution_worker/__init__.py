"""
Attribution Worker - adaptive revenue attribution engine
"""
