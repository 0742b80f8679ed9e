"""Send a notification about the previous stage."""

import asyncio


async def handle(job):
    await asyncio.sleep(0)
    print(f"mail to {job.data.stage.data['to']}: {job.data.previous}")
    return "sent"
