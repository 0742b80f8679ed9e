"""Fixture coroutine job."""


async def handle(job):
    return f"sent:{job.data.stage.name}"
