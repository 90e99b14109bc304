"""
Configuration for the token counter.
"""
