"""
Live gateway checks.

Skipped unless IPFS_INTEGRATION=1. Set IPFS_INTEGRATION_URL (and
IPFS_INTEGRATION_AUTH for a private gateway) to test a gateway other than
ipfs.io.
"""

import json
import os

import pytest

from appdata_backfill.gateway import IpfsGateway

KNOWN_CID = "Qma4Dwke5h8mgJyZMDRvKqM3RF7c6Mxcj3fR4um9UGaNF6"

pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(
        os.getenv("IPFS_INTEGRATION") != "1",
        reason="set IPFS_INTEGRATION=1 to run live gateway tests",
    ),
]


@pytest.mark.asyncio
async def test_fetch_known_document():
    url = os.getenv("IPFS_INTEGRATION_URL", "https://ipfs.io")
    query = os.getenv("IPFS_INTEGRATION_AUTH")

    async with IpfsGateway(url, query=query, timeout_seconds=30) as gateway:
        content = await gateway.fetch(KNOWN_CID)

    json.loads(content.decode("utf-8"))
