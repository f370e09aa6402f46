"""Faker construction and the value providers built on it.

Each generator call builds its own :class:`faker.Faker` through
:func:`make_faker`, so locale and seed never leak between calls.
"""

from __future__ import annotations

from datetime import timezone
from typing import Callable

from faker import Faker

from apisynth.models import MockDataOptions


def make_faker(options: MockDataOptions) -> Faker:
    """Return a Faker for *options*, seeded when ``options.seed`` is set."""
    fake = Faker(options.locale) if options.locale else Faker()
    if options.seed is not None:
        fake.seed_instance(options.seed)
    return fake


def recent_date(fake: Faker) -> str:
    return fake.date_between(start_date="-30d", end_date="today").isoformat()


def recent_datetime(fake: Faker) -> str:
    return fake.date_time_between(start_date="-30d", end_date="now", tzinfo=timezone.utc).isoformat()


def lorem(fake: Faker, length: int) -> str:
    """Lorem text banded by the length of the value it stands in for."""
    if length < 10:
        return fake.word()
    if length < 50:
        return fake.sentence()
    if length < 200:
        return fake.paragraph()
    return "\n".join(fake.paragraphs(nb=2))


FORMAT_PROVIDERS: dict[str, Callable[[Faker], str]] = {
    "email": lambda f: f.email(),
    "uri": lambda f: f.url(),
    "url": lambda f: f.url(),
    "uuid": lambda f: f.uuid4(),
    "date": recent_date,
    "date-time": recent_datetime,
    "ipv4": lambda f: f.ipv4(),
    "ipv6": lambda f: f.ipv6(),
    "hostname": lambda f: f.domain_name(),
    "phone": lambda f: f.phone_number(),
    "telephone": lambda f: f.phone_number(),
}
"""String ``format`` values with a dedicated generator."""

# Keyword heuristics on a field's title or name, checked in order.
# "username" must precede "name".
NAME_PROVIDERS: list[tuple[tuple[str, ...], Callable[[Faker], str]]] = [
    (("username",), lambda f: f.user_name()),
    (("name",), lambda f: f.name()),
    (("email",), lambda f: f.email()),
    (("phone", "tel"), lambda f: f.phone_number()),
    (("address",), lambda f: f.street_address()),
    (("city",), lambda f: f.city()),
    (("country",), lambda f: f.country()),
    (("zip", "postal"), lambda f: f.postcode()),
    (("description", "desc"), lambda f: f.paragraph()),
    (("title",), lambda f: f.sentence()),
    (("comment",), lambda f: f.paragraph(nb_sentences=1)),
    (("password",), lambda f: f.password()),
    (("url", "uri"), lambda f: f.url()),
    (("id", "uuid"), lambda f: f.uuid4()),
]
