"""
Carbon Agent - Publish Schedule
"""


def next_publish_delay(last_publish: float, interval: float, now: float) -> float:
    """Seconds until the next publish pass is due.

    Negative when the schedule is behind; callers treat any value <= 0 as
    "publish now". Missed intervals are not coalesced into a burst.
    """
    return (last_publish + interval) - now
