import hashlib
import hmac
import time

SIGNATURE_HEADER = "stripe-signature"
SIGNATURE_SCHEME = "v1"
MAX_AGE_SECONDS = 300
MAX_FUTURE_SKEW_SECONDS = 30


def compute_signature(secret: str, timestamp: int, body: bytes) -> str:
    """Compute HMAC-SHA256 signature for the given timestamp and body."""
    message = f"{timestamp}.".encode() + body
    return hmac.new(secret.encode(), message, hashlib.sha256).hexdigest()


def format_signature_header(timestamp: int, signature: str) -> str:
    return f"t={timestamp},{SIGNATURE_SCHEME}={signature}"


def parse_signature_header(header: str) -> tuple[int, list[str]]:
    """
    Split a ``t=<unix>,v1=<hex>[,v1=<hex>...]`` header.

    Raises:
        ValueError: If the timestamp or every v1 signature is missing.
    """
    if not header:
        raise ValueError("Missing or empty signature header.")

    timestamp_str = None
    signatures: list[str] = []
    for part in header.split(","):
        key, sep, value = part.strip().partition("=")
        if not sep:
            continue
        if key == "t":
            timestamp_str = value
        elif key == SIGNATURE_SCHEME and value:
            signatures.append(value)

    try:
        timestamp = int(timestamp_str)
    except (ValueError, TypeError):
        raise ValueError(f"Invalid timestamp: {timestamp_str!r}")

    if not signatures:
        raise ValueError(f"No {SIGNATURE_SCHEME} signature in header.")

    return timestamp, signatures


def verify_signature(
    secret: str,
    header: str,
    body: bytes,
    max_age: int = MAX_AGE_SECONDS,
    now: float | None = None,
) -> bool:
    """
    Verify a stripe-signature header against the raw body.

    Args:
        secret: Webhook signing secret.
        header: The stripe-signature header value.
        body: Raw request body bytes.
        max_age: Maximum allowed age in seconds (default 300).
        now: Injectable current time for testing. Uses time.time() if None.

    Returns:
        True if one of the v1 signatures is valid and not expired.

    Raises:
        ValueError: If the header is missing/invalid/expired or no signature matches.
    """
    timestamp, signatures = parse_signature_header(header)

    current_time = now if now is not None else time.time()
    age = current_time - timestamp

    if age > max_age:
        raise ValueError(f"Signature expired: {age:.1f}s old (max {max_age}s).")

    if age < -MAX_FUTURE_SKEW_SECONDS:
        raise ValueError(f"Timestamp too far in the future: {-age:.1f}s.")

    expected = compute_signature(secret, timestamp, body)
    if not any(hmac.compare_digest(expected, candidate) for candidate in signatures):
        raise ValueError("Signature mismatch.")

    return True
