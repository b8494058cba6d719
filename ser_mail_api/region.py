"""SER regional endpoints."""

from __future__ import annotations

from enum import Enum


class Region(str, Enum):
    US = "us"
    EU = "eu"
    AU = "au"

    @property
    def host(self) -> str:
        return _REGION_HOSTS[self]

    @property
    def base_url(self) -> str:
        return f"https://{self.host}/v1"

    @property
    def token_url(self) -> str:
        return f"{self.base_url}/token"

    @classmethod
    def from_host(cls, host: str) -> "Region":
        try:
            return _HOST_REGIONS[host.strip().lower()]
        except KeyError:
            raise ValueError(f"Unknown SER host: {host!r}") from None

    @classmethod
    def parse(cls, value: "str | Region") -> "Region":
        """Accept a Region, its name (``"EU"``), its value (``"eu"``) or its host."""
        if isinstance(value, Region):
            return value
        normalized = value.strip().lower()
        for region in cls:
            if normalized == region.value:
                return region
        return cls.from_host(normalized)


_REGION_HOSTS: dict[Region, str] = {
    Region.US: "mail-us.ser.proofpoint.com",
    Region.EU: "mail-eu.ser.proofpoint.com",
    Region.AU: "mail-aus.ser.proofpoint.com",
}

_HOST_REGIONS: dict[str, Region] = {host: region for region, host in _REGION_HOSTS.items()}
