from __future__ import annotations

import asyncio
import logging
import signal

from .config import load_settings
from .service import StreamService

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # httpx logs every RPC request at INFO.
    logging.getLogger("httpx").setLevel(logging.WARNING)


async def _main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)
    service = StreamService(settings)
    try:
        asyncio.get_running_loop().add_signal_handler(signal.SIGTERM, service.stop)
    except NotImplementedError:
        logger.debug("SIGTERM handler not supported on this platform")
    await service.run()


def main() -> None:
    try:
        asyncio.run(_main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
