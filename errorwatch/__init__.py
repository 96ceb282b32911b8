"""
errorwatch package - exception reporting with root-cause extraction and SMS alerts.

Subpackages:
- core: Error tree serialization, alert client, reporting entry points
"""
