"""Undo a failed build."""


def handle(job):
    return {"rolled_back": job.data.body["ref"], "reason": job.data.previous}
