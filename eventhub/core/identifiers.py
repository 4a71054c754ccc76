"""Human-facing identifiers: URL slugs and registration confirmation codes."""
import re
import secrets
import string

BASE36_LOWER = string.digits + string.ascii_lowercase
BASE36_UPPER = string.digits + string.ascii_uppercase

SLUG_SUFFIX_LENGTH = 5


def random_token(length: int, alphabet: str = BASE36_LOWER) -> str:
    return "".join(secrets.choice(alphabet) for _ in range(length))


def slugify(text: str) -> str:
    """Lowercase, non-alphanumeric runs collapsed to single dashes, no edge dashes."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


def unique_slug(text: str) -> str:
    """
    Slug with a random base-36 suffix, e.g. ``acme-events-k3x9q``.

    Callers still check the slug against storage; the suffix only makes collisions rare.
    """
    base = slugify(text) or "item"
    return f"{base[:100]}-{random_token(SLUG_SUFFIX_LENGTH)}"


def confirmation_code(length: int) -> str:
    """Uppercase base-36 code shown to attendees as their registration number."""
    return random_token(length, BASE36_UPPER)
