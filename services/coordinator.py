import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import replace

import config
from platforms import get_platform
from platforms.base import PublishResult

logger = logging.getLogger(__name__)


def publish_to_platforms(post, targets, max_parallel=None):
    """Publish one post to several platforms at once.

    ``targets`` maps platform name to the TargetAccount to publish with. Each
    platform runs independently; results come back in the order of ``targets``.
    """
    results = {}
    jobs = {}
    for platform, account in targets.items():
        try:
            client = get_platform(platform)
        except ValueError as e:
            results[platform] = PublishResult(
                platform=platform, success=False, error=str(e), error_kind="validation"
            )
            continue
        jobs[platform] = (client, replace(post, target=account))

    if jobs:
        if max_parallel is None:
            max_parallel = config.MAX_PARALLEL_PUBLISHES
        workers = max(1, min(max_parallel, len(jobs)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            future_to_platform = {
                executor.submit(client.publish, platform_post): platform
                for platform, (client, platform_post) in jobs.items()
            }
            for future in as_completed(future_to_platform):
                platform = future_to_platform[future]
                try:
                    results[platform] = future.result()
                except Exception as e:
                    logger.exception("Unexpected error publishing to %s", platform)
                    results[platform] = PublishResult(
                        platform=platform, success=False, error=str(e)
                    )

    ordered = [results[platform] for platform in targets]
    succeeded = [r.platform for r in ordered if r.success]
    logger.info("Published to %d/%d platforms: %s", len(succeeded), len(ordered), succeeded)
    return ordered
