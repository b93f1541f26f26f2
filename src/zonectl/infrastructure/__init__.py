"""Infrastructure layer: store, command channel, map sink, timers.

This layer depends on stdlib and third-party libs (SQLAlchemy, structlog).
It must never import from services, commands, or output. The one domain
import it allows is :class:`~zonectl.domain.geometry.Position`, the value
type the position collaborator returns.
"""
