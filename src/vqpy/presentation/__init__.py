"""
Presentation layer: command line and visualization.
"""
