"""Kubernetes manifests: a local file, a URL or inline text."""

from __future__ import annotations

import os.path
from dataclasses import dataclass
from urllib.parse import urlparse


def is_valid_url(value: str) -> bool:
    parsed = urlparse(value)
    return bool(parsed.scheme) and bool(parsed.netloc)


@dataclass(frozen=True, slots=True)
class Manifest:
    """A manifest source. Exactly one of the fields is set."""

    path: str = ""
    url: str = ""
    inline: str = ""

    def __post_init__(self) -> None:
        if sum(1 for v in (self.path, self.url, self.inline) if v) != 1:
            raise ValueError("a manifest must have exactly one of path, url or inline")

    def __str__(self) -> str:
        if self.url:
            return self.url
        if self.path:
            return self.path
        return "<inline manifest>"


def new_manifest(value: str) -> Manifest:
    """Classify a manifest given as a URL, a local file name or literal text."""

    if not value.strip():
        raise ValueError("empty manifest")
    if is_valid_url(value):
        return Manifest(url=value)
    if os.path.isfile(value):
        return Manifest(path=value)
    return Manifest(inline=value)
