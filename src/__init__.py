"""
Exposure Tracker

Weekly microplastic and PFAS exposure scoring, risk classification and
trend aggregation behind a small REST API.
"""

__version__ = "0.1.0"
