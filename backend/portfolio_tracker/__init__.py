# backend/portfolio_tracker/__init__.py
"""Portfolio Tracker: equity curves, strategy simulations and portfolio views."""

__version__ = "1.0.0"
