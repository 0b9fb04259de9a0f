"""
Core configuration, persistence, security and errors.
"""
