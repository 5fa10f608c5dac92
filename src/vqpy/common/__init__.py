"""
Shared infrastructure: errors, logging, metrics and configuration.
"""
