"""Unit and loopback tests for the contacts terminal client."""

import logging

logging.getLogger("asyncio").setLevel(logging.ERROR)
