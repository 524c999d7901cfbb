import logging
import time

import config
from platforms.errors import ProcessingError

logger = logging.getLogger(__name__)

READY_STATES = {"succeeded", "finished", "published"}
FAILED_STATES = {"failed", "error", "expired"}


def wait_for_ready(check_status, media_id, max_attempts, default_delay, strict=None,
                   initial_delay=None):
    """Poll an asynchronous processing job until it reaches a terminal state.

    ``check_status(media_id)`` returns ``(state, check_after_secs, detail)``;
    ``state`` may be None when the platform reports no processing info, which
    counts as ready. A failed state raises ProcessingError without polling
    again. Running out of attempts logs a warning and returns False, or raises
    ProcessingError when ``strict`` is set. ``initial_delay`` is slept before
    the first check, for platforms that hand back a wait hint up front.
    """
    if strict is None:
        strict = config.POLL_STRICT
    if initial_delay:
        time.sleep(initial_delay)

    for attempt in range(1, max_attempts + 1):
        state, check_after, detail = check_status(media_id)
        normalized = (state or "").lower()

        if state is None or normalized in READY_STATES:
            logger.info("Media %s is ready (attempt %d)", media_id, attempt)
            return True
        if normalized in FAILED_STATES:
            raise ProcessingError(
                f"Media processing failed for {media_id}: {detail or state}"
            )

        logger.info(
            "Media %s still %s (attempt %d/%d)", media_id, state, attempt, max_attempts
        )
        if attempt < max_attempts:
            time.sleep(check_after or default_delay)

    if strict:
        raise ProcessingError(
            f"Media {media_id} did not finish processing after {max_attempts} checks"
        )
    logger.warning(
        "Media %s did not become ready after %d checks, proceeding anyway",
        media_id, max_attempts,
    )
    return False
