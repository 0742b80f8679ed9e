"""Trigger the example workflow and run its jobs in-process.

Run from the repository root:

    python guides/basic_trigger.py
"""

import asyncio
import logging
from pathlib import Path

import hookflow
from hookflow import HookflowConfig

EXAMPLE = Path(__file__).parent / "example"


async def main() -> None:
    logging.basicConfig(level=logging.INFO)
    config = HookflowConfig(
        workflows_directory=EXAMPLE / "workflows",
        jobs_directory=EXAMPLE / "jobs",
    )
    engine = await hookflow.init(config)

    # satisfies the requirements: dispatches build, then notify
    await hookflow.register("push", {"ref": "main", "repository": {"private": False}})
    # fails the requirements: logged, nothing dispatched
    await hookflow.register("push", {"ref": "feature/x", "repository": {"private": False}})

    executed = await engine.queue.run_pending()
    print(f"Executed {executed} job(s)")
    await hookflow.close()


if __name__ == "__main__":
    asyncio.run(main())
