import time
from datetime import datetime, timezone


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_timestamp(epoch_ms: int | None = None) -> str:
    """Format epoch milliseconds as ``2024-01-01T00:00:00.000Z``."""
    if epoch_ms is None:
        epoch_ms = now_ms()
    moment = datetime.fromtimestamp(epoch_ms / 1000, tz=timezone.utc)
    return f"{moment.strftime('%Y-%m-%dT%H:%M:%S')}.{epoch_ms % 1000:03d}Z"
