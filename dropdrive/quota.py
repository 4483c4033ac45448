# Filename: dropdrive/quota.py
from decimal import Decimal, ROUND_HALF_EVEN
import logging

from .exceptions import QuotaExceededError
from .models import User

logger = logging.getLogger(__name__)

BYTES_PER_MB = Decimal(1024 * 1024)
MB_PLACES = Decimal("0.0001")


def to_mb(num_bytes: int) -> Decimal:
    """Bytes to megabytes, rounded to 4 decimal places like the stored columns."""
    return (Decimal(num_bytes) / BYTES_PER_MB).quantize(MB_PLACES, rounding=ROUND_HALF_EVEN)


def check_and_reserve(user: User, incoming_mb: Decimal) -> None:
    used = Decimal(user.used_storage_mb)
    total = Decimal(user.total_storage_mb)
    if used + incoming_mb > total:
        logger.warning("User %s upload of %s MB rejected (%s/%s MB used)", user.id, incoming_mb, used, total)
        raise QuotaExceededError(f"Uploading exceeds your {total.normalize():f} MB storage limit.")


def commit(user: User, delta_mb: Decimal) -> None:
    """Apply a usage change. Negative deltas (freed space) clamp at zero."""
    used = Decimal(user.used_storage_mb) + delta_mb
    user.used_storage_mb = max(Decimal("0"), used).quantize(MB_PLACES)


def usage(user: User) -> dict:
    used = Decimal(user.used_storage_mb)
    total = Decimal(user.total_storage_mb)
    return {
        "used_storage_mb": used,
        "total_storage_mb": total,
        "available_storage_mb": max(Decimal("0"), total - used),
    }
