# PATH: strategy/jobs/__init__.py
"""
Strategy jobs package.

Available entry points:
    python -m strategy.jobs.run_spread_logger --chain arbitrum

NOTE: This __init__.py intentionally does NOT import run_spread_logger
to avoid side effects when importing the package. Import it directly:

    from strategy.jobs.run_spread_logger import run_spread_logger
"""

__all__: list[str] = []
