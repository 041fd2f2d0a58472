"""
Upstream data sources, one adapter per provider.
"""
