"""Celery task definitions.

These tasks are thin wrappers that call into the service layer.
The actual business logic lives in the services module.
"""

import logging

from pydantic import ValidationError

from llmstxt.schemas import JobMessage
from llmstxt.workers.celery_app import celery_app
from llmstxt.workers.runtime import get_runtime

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="llmstxt.workers.tasks.generate_llms_txt")
def generate_llms_txt(self, message: dict) -> dict:
    """Run one generation job and return its final status projection.

    Malformed messages are logged and dropped rather than retried.
    """
    try:
        job_message = JobMessage.model_validate(message)
    except ValidationError as e:
        logger.error(f"Rejecting invalid job message {message!r}: {e}")
        return {"status": "error", "error": str(e)}

    logger.info(
        f"Received job {job_message.job_id} for {job_message.url} "
        f"(delivery {self.request.id})"
    )

    runtime = get_runtime()
    runtime.start()
    job = runtime.dispatch(job_message).result()

    if job is None:
        return {"jobId": job_message.job_id, "status": "unknown"}
    return job.model_dump(mode="json", by_alias=True, exclude_none=True, exclude={"content"})
