"""Process entry point for ``meeting-agent``."""

import asyncio
import logging
import signal
import sys

from pydantic import ValidationError

from .config import Config
from .session import Session

LOG = logging.getLogger("meeting_agent")

_SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


async def run_agent(config: Config, session: Session | None = None) -> int:
    """Run one session until a shutdown signal; return the exit status."""
    session = session or Session.create(config)
    loop = asyncio.get_running_loop()
    for sig in _SHUTDOWN_SIGNALS:
        loop.add_signal_handler(sig, session.request_shutdown)

    LOG.info("Meeting agent starting")
    LOG.info("Agent name: %s", config.agent_name)
    LOG.info("Joinly URL: %s", config.joinly_url)
    LOG.info("Meeting URL: %s", config.meeting_url)
    try:
        await session.run()
    except Exception:
        LOG.exception("Fatal error")
        return 1
    finally:
        for sig in _SHUTDOWN_SIGNALS:
            loop.remove_signal_handler(sig)
    return 0


def main() -> None:
    """CLI entry point for ``meeting-agent``."""
    try:
        config = Config()
    except ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=config.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    sys.exit(asyncio.run(run_agent(config)))


if __name__ == "__main__":
    main()
