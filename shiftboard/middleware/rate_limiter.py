"""
Rate limiting configuration.

The Limiter instance is created in shiftboard/__init__.py with no default
limits; this module applies limits per blueprint. The login route carries
its own ``LOGIN_RATE_LIMIT`` decorator (see blueprints/auth_bp.py).

Usage:
    from shiftboard.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

logger = logging.getLogger(__name__)

WRITE_LIMIT = "60/minute"
READ_LIMIT = "200/minute"

_WRITE_BLUEPRINTS = ("activities", "collaborators", "managers", "tenant_config", "clock")
_READ_BLUEPRINTS = ("board",)


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per remote IP):
        - Mutation blueprints: 60/minute
        - Dashboard reads:     200/minute
        - Health check:        exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for bp_name in _WRITE_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(WRITE_LIMIT)(bp)

    for bp_name in _READ_BLUEPRINTS:
        bp = app.blueprints.get(bp_name)
        if bp:
            limiter.limit(READ_LIMIT)(bp)

    bp = app.blueprints.get("health")
    if bp:
        limiter.exempt(bp)

    app.logger.info("Rate limiter configured — write: %s, read: %s, login: %s",
                    WRITE_LIMIT, READ_LIMIT, app.config.get("LOGIN_RATE_LIMIT"))
