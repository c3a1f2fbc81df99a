import logging
import threading
import time


def run_janitor_once(settings: dict, state) -> int:
    """Delete uploads that nothing references and that are older than the TTL."""
    try:
        ttl_minutes = int(settings.get("orphan_upload_ttl_minutes", 60))
    except (TypeError, ValueError):
        ttl_minutes = 60
    ttl_minutes = max(1, min(ttl_minutes, 7 * 24 * 60))

    referenced = state.referenced_media()
    return state.media.sweep_orphans(referenced, max_age_seconds=ttl_minutes * 60)


def start_janitor(settings: dict, state):
    """Start a lightweight background cleanup loop.

    - Removes uploaded images that were never attached to a post, reply or
      avatar (e.g. the client uploaded, then abandoned the post)

    Deleting a post already removes its images; this only catches leftovers.
    """

    def _loop():
        while True:
            # Re-read settings each cycle so changes take effect live.
            try:
                interval = int(settings.get("janitor_interval_seconds", 300))
            except (TypeError, ValueError):
                interval = 300
            interval = max(10, min(interval, 3600))

            time.sleep(interval)

            try:
                n = run_janitor_once(settings, state)
                if n:
                    logging.info("[JANITOR] deleted %d orphaned uploads", n)
            except Exception as e:
                logging.error("[JANITOR] orphaned upload cleanup error: %s", e)

    t = threading.Thread(target=_loop, name="campusfeed_janitor", daemon=True)
    t.start()
    return t
