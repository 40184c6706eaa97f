# =============================================================================
# Cache Control Worker - Package Initialization
# =============================================================================
"""
Cache Control Worker

Consumes Cloud Storage change notifications from Pub/Sub and applies a
configured Cache-Control directive to each referenced object.
"""

__version__ = "1.0.0"
