"""Process-wide holder of the configured test server."""

from typing import Any, Callable, Dict, Optional

from mongo_test_server.config.logging import get_logger
from mongo_test_server.config.settings import ServerSettings

from .mongod import Mongod

logger = get_logger(__name__)


class ServerRegistry:
    """Keeps the single ``Mongod`` a test suite configures up front.

    Configuration usually happens in a conftest long before any fixture or
    hook calls ``start_server``; both sides meet here.
    """

    _server: Optional[Mongod] = None
    settings: Optional[ServerSettings] = None

    @classmethod
    def configure(
        cls,
        options: Optional[Dict[str, Any]] = None,
        customize: Optional[Callable[[Mongod], None]] = None,
    ) -> Mongod:
        """Apply options to the shared server, creating it if needed.

        Args:
            options: Attribute values; keys ``Mongod`` does not recognize are ignored
            customize: Called with the server for anything options cannot express

        Returns:
            Mongod: The shared server
        """
        server = cls.server()
        for key, value in (options or {}).items():
            if key in Mongod.CONFIGURABLE:
                setattr(server, key, value)
            else:
                logger.debug("Ignoring unknown server option", option=key)
        if customize is not None:
            customize(server)
        return server

    @classmethod
    def server(cls) -> Mongod:
        if cls._server is None:
            cls._server = Mongod(settings=cls.settings)
        return cls._server

    @classmethod
    def is_configured(cls) -> bool:
        return cls._server is not None and cls._server.configured

    @classmethod
    def start_server(cls) -> Optional[Mongod]:
        if not cls.is_configured():
            logger.warning("Mongo test server not configured properly!")
            return None
        return cls._server.start()

    @classmethod
    def stop_server(cls) -> Optional[Mongod]:
        if not cls.is_configured():
            return None
        return cls._server.stop()

    @classmethod
    def reset(cls) -> None:
        """Stop and forget the shared server."""
        if cls._server is not None:
            cls._server.stop()
        cls._server = None
