"""
Assessment engine: tests, attempts, auto-grading and score aggregation.
"""
__version__ = "0.1.0"
