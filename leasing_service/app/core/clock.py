from datetime import datetime, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# Dependency, overridden in tests to pin "now"
def get_now() -> datetime:
    return utc_now()
