from __future__ import annotations

import dataclasses

from .models import Author


def normalize_email(email: str) -> str:
    return email.strip().strip("<>").strip().lower()


def normalize_name(name: str) -> str:
    return name.strip().casefold()


@dataclasses.dataclass(frozen=True)
class AuthorResolver:
    """
    Pure mapping from a raw git identity to the canonical author key.

    `email_aliases` and `name_aliases` are keyed by normalized email / name and
    map to the key the author should be reported under. Without a matching
    alias the stripped display name is the key, falling back to the email when
    git recorded no name.
    """

    email_aliases: tuple[tuple[str, str], ...] = ()
    name_aliases: tuple[tuple[str, str], ...] = ()

    @classmethod
    def from_aliases(cls, aliases: dict[str, str] | None) -> AuthorResolver:
        emails: dict[str, str] = {}
        names: dict[str, str] = {}
        for alias, canonical in (aliases or {}).items():
            alias = str(alias or "").strip()
            canonical = str(canonical or "").strip()
            if not alias or not canonical:
                continue
            if "@" in alias:
                emails[normalize_email(alias)] = canonical
            else:
                names[normalize_name(alias)] = canonical
        return cls(
            email_aliases=tuple(sorted(emails.items())),
            name_aliases=tuple(sorted(names.items())),
        )

    def key_for(self, name: str, email: str) -> str:
        e = normalize_email(email)
        if e:
            for alias, canonical in self.email_aliases:
                if alias == e:
                    return canonical
        n = normalize_name(name)
        if n:
            for alias, canonical in self.name_aliases:
                if alias == n:
                    return canonical
        display = name.strip()
        if display:
            return display
        return e

    def key(self, author: Author) -> str:
        return self.key_for(author.name, author.email)
