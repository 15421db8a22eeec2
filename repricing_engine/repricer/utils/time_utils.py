from datetime import datetime, timedelta, timezone

def utcnow():
    return datetime.now(timezone.utc)

def utcnow_iso() -> str:
    return utcnow().isoformat()

def ttl_epoch(days: int) -> int:
    """Epoch seconds `days` from now, used as the proposal expiry."""
    return int((utcnow() + timedelta(days=days)).timestamp())
