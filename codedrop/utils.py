import re
import secrets

def parse_time(time_str: str) -> int:
    """Parse time string with units (s, m, h, d) to seconds.

    Examples:
        "60" -> 60 seconds
        "30m" or "30M" -> 1800 seconds
        "24h" or "24H" -> 86400 seconds
        "30d" or "30D" -> 2592000 seconds
    """
    time_str = str(time_str).strip()

    # Check if it's just a number (seconds)
    if time_str.isdigit():
        return int(time_str)

    # Parse with units
    match = re.match(r'^(\d+(?:\.\d+)?)\s*(s|m|h|d)$', time_str, re.IGNORECASE)
    if not match:
        raise ValueError(f"Invalid time format: {time_str}")

    value = float(match.group(1))
    unit = match.group(2).lower()

    multipliers = {
        's': 1,
        'm': 60,        # minutes to seconds
        'h': 3600,      # hours to seconds
        'd': 86400      # days to seconds
    }

    return int(value * multipliers[unit])

def parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean flag from an environment variable value."""
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")

def generate_code(length: int = 6) -> str:
    """Generate a random numeric access code, zero-padded to ``length`` digits."""
    return str(secrets.randbelow(10 ** length)).zfill(length)

def code_pattern(length: int) -> re.Pattern:
    """Compiled pattern matching exactly ``length`` ASCII digits."""
    return re.compile(rf'^[0-9]{{{length}}}$')

def format_time(seconds: int) -> str:
    """Format seconds into human-readable time string"""
    seconds = max(0, int(seconds))
    d, r = divmod(seconds, 86400)
    h, r = divmod(r, 3600)
    m, s = divmod(r, 60)
    return f"{d} days, {h} hours, {m} minutes, {s} seconds"
