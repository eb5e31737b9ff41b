# backend/portfolio_tracker/services/__init__.py
"""
Service layer.

Subpackages:
    valuation   - Price resolution, holdings replay and the valuation engine
    simulation  - DCA, HODL and preset portfolio strategies
    analytics   - Return and risk metrics over value series

Import from the subpackages directly; this module stays import-light so
utils can depend on services.exceptions without import cycles.
"""
