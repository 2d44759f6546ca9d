"""
RawdahScope - resilient data acquisition for an environmental dashboard.

Layers::

    infrastructure/   TTL cache and retry executor (no domain knowledge)
    api/services/     Upstream clients and per-domain source chains
    core/             Data processing, freshness classification and the
                      dashboard state coordinator
    api/routes/       Thin FastAPI surface over the coordinator
"""

__version__ = "1.0.0"
