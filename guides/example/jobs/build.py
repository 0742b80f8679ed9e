"""Pretend to build the pushed ref."""


def handle(job):
    target = job.data.stage.data.get("target", "default")
    return {"artifact": f"{job.data.body['ref']}-{target}.tar.gz"}
