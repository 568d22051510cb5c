import logging
import sys
from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from beanstalk import Client

from tests.utils import ScriptedConnection

# Configure logging to see debug messages
logging.basicConfig(
    level=logging.DEBUG, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s", stream=sys.stdout
)


@pytest.fixture
def connection() -> ScriptedConnection:
    """Fixture that provides an unconnected scripted connection."""
    return ScriptedConnection()


@pytest_asyncio.fixture
async def client(connection: ScriptedConnection) -> AsyncGenerator[Client, None]:
    """Fixture that provides a client connected over a scripted connection."""
    client = Client(connection)
    await client.connect()
    yield client
