"""Identity ("trusted") facts derived from a node certname."""
from __future__ import annotations

from typing import Any


def identity_facts(certname: str) -> dict[str, Any]:
    """``web1.example.com`` -> hostname ``web1``, domain ``example.com``."""
    hostname, _, domain = certname.partition(".")
    return {
        "authenticated": "local",
        "certname": certname,
        "domain": domain,
        "hostname": hostname,
    }


__all__ = ["identity_facts"]
