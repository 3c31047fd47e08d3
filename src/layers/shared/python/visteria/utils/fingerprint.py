"""Cookie-less visitor fingerprinting."""

import hashlib
from typing import NamedTuple

from visteria.utils.request import get_client_ip, get_user_agent


class ClientInfo(NamedTuple):
    """Request metadata that identifies a visitor."""

    ip: str
    user_agent: str

    @classmethod
    def from_event(cls, event: dict) -> "ClientInfo":
        return cls(ip=get_client_ip(event), user_agent=get_user_agent(event))


def visitor_hash(site_id: str, ip: str, user_agent: str) -> str:
    """Derive a stable visitor fingerprint.

    SHA-256 over ``site_id|ip|user_agent``, hex encoded. Any change in IP or
    user agent yields a different visitor.
    """
    material = f"{site_id}|{ip}|{user_agent}"
    return hashlib.sha256(material.encode("utf-8")).hexdigest()
