"""
Core modules for the gear usage report.

This package contains time window resolution, elapsed time accounting,
cost estimation, billing plan lookups and report aggregation.
"""
