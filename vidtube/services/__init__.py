"""Service layer package initializer.

This re-exports individual domain services so that callers can simply
``from vidtube.services import user_service, video_service``.
"""

from importlib import import_module
from types import ModuleType
from typing import TYPE_CHECKING

# Lazily import modules; several services reference each other.

__all__ = [
    "media_service",
    "user_service",
    "video_service",
    "comment_service",
    "like_service",
    "tweet_service",
    "subscription_service",
    "dashboard_service",
]

if TYPE_CHECKING:
    from . import media_service as media_service  # noqa: F401
    from . import user_service as user_service  # noqa: F401
    from . import video_service as video_service  # noqa: F401
    from . import comment_service as comment_service  # noqa: F401
    from . import like_service as like_service  # noqa: F401
    from . import tweet_service as tweet_service  # noqa: F401
    from . import subscription_service as subscription_service  # noqa: F401
    from . import dashboard_service as dashboard_service  # noqa: F401
else:
    # At runtime perform the import lazily to keep import graph lighter.
    def __getattr__(name: str) -> ModuleType:  # noqa: D401
        if name in __all__:
            module = import_module(f"vidtube.services.{name}")
            globals()[name] = module
            return module
        raise AttributeError(name)
