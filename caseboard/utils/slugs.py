"""Random tokens and human-readable slugs."""

import re
import secrets
import string

EMAIL_SLUG_LENGTH = 8
QUOTE_ID_LENGTH = 8

_LOWER_ALNUM = string.ascii_lowercase + string.digits
_UPPER_ALNUM = string.ascii_uppercase + string.digits


def generate_email_slug(length: int = EMAIL_SLUG_LENGTH) -> str:
    """
    Generate the token embedded in a case's inbound address (card-<slug>@...).

    Lowercase alphanumerics from a CSPRNG. Collisions are not checked here;
    the unique constraint on cases.email_slug catches them at insert time.
    """
    return "".join(secrets.choice(_LOWER_ALNUM) for _ in range(length))


def generate_quote_id(length: int = QUOTE_ID_LENGTH) -> str:
    """Short uppercase alphanumeric quote reference."""
    return "".join(secrets.choice(_UPPER_ALNUM) for _ in range(length))


def slugify(name: str) -> str:
    """Board slug: lowercase, runs of non-alphanumerics collapsed to '-'."""
    slug = re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")
    return slug or "board"


def inbound_address(email_slug: str, domain: str) -> str:
    return f"card-{email_slug}@{domain}"
