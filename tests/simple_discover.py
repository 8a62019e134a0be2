#!/usr/bin/env python3

import logging
import asyncio
import joku

#logging.basicConfig(level=logging.DEBUG)

async def amain():
    # All parameters are optional; they allow you to set the search wait time, probe concurrency, etc.
    async with joku.TransportClient() as transport:
        engine = joku.DiscoveryEngine(transport)
        for device in await engine.discover():
            print(device)

loop = asyncio.new_event_loop()
try:
    asyncio.set_event_loop(loop)
    loop.run_until_complete(amain())
finally:
    loop.close()
