"""Pydantic models handed to the presentation layer."""

from typing import List

from pydantic import BaseModel, ConfigDict


class Extension(BaseModel):
    """A decoded, display-ready certificate extension."""
    model_config = ConfigDict(frozen=True)

    name: str  # Human label, "-N/A-" for extensions without a decoder
    oid: str  # Dotted extension OID
    critical: bool = False
    values: List[str] = []  # Display lines, in order

    def title(self) -> str:
        title = f"{self.name} ({self.oid})"
        if self.critical:
            title = f"{title} [critical]"
        return title
