"""
driftguard: cross-artifact consistency validation for observability stacks.

Checks that service source, dashboards, collection pipeline configuration,
datasource provisioning and the metric catalog agree with each other, and
that end-to-end tests can actually fail.
"""

__version__ = "0.1.0"
