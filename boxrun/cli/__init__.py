"""
Command-line interface for boxrun.
"""
